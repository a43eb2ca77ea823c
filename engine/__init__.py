"""Client-side engine for taking multiple-choice test attempts."""
from engine.errors import (
    InvalidTransitionError,
    SessionError,
    SessionLoadError,
    SessionNotFoundError,
    SyncError,
)
from engine.http_sync import HttpProgressSynchronizer
from engine.ledger import AccountLedger
from engine.limit_gate import QuestionLimitGate
from engine.models import AnswerRecord, Attempt, Question, TestContent, UsageLimits
from engine.scoring import FinishSummary, Grade, GradeBands, ReviewFilter, ReviewSummary
from engine.session import (
    ActionResult,
    ActionStatus,
    AttemptSession,
    SessionSettings,
    SessionState,
)
from engine.sync import BackgroundDispatcher, InlineDispatcher, ProgressSynchronizer

__all__ = [
    "AccountLedger",
    "ActionResult",
    "ActionStatus",
    "AnswerRecord",
    "Attempt",
    "AttemptSession",
    "BackgroundDispatcher",
    "FinishSummary",
    "Grade",
    "GradeBands",
    "HttpProgressSynchronizer",
    "InlineDispatcher",
    "InvalidTransitionError",
    "ProgressSynchronizer",
    "Question",
    "QuestionLimitGate",
    "ReviewFilter",
    "ReviewSummary",
    "SessionError",
    "SessionLoadError",
    "SessionNotFoundError",
    "SessionSettings",
    "SessionState",
    "SyncError",
    "TestContent",
    "UsageLimits",
]
