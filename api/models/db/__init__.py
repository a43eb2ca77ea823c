"""Database models."""
from api.models.db.account import Account, CorrectAnswer
from api.models.db.attempt import Attempt, AttemptAnswer, AttemptStatus

__all__ = [
    "Account",
    "CorrectAnswer",
    "Attempt",
    "AttemptAnswer",
    "AttemptStatus",
]
