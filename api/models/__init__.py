"""Pydantic models."""
from api.models.account import (
    AccountResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SubscriptionUpdate,
    UsageLimitsResponse,
)
from api.models.attempts import (
    AnswerPayload,
    AttemptEnvelope,
    AttemptListResponse,
    AttemptPayload,
    AttemptResponse,
    FinishRequest,
    FinishResponse,
    PositionUpdate,
)
from api.models.tests import QuestionPayload, TestMetadata, TestPayload

__all__ = [
    "AccountResponse",
    "AnswerPayload",
    "AttemptEnvelope",
    "AttemptListResponse",
    "AttemptPayload",
    "AttemptResponse",
    "FinishRequest",
    "FinishResponse",
    "PositionUpdate",
    "QuestionPayload",
    "SubmitAnswerRequest",
    "SubmitAnswerResponse",
    "SubscriptionUpdate",
    "TestMetadata",
    "TestPayload",
    "UsageLimitsResponse",
]
