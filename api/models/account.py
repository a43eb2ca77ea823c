"""Account ledger and entitlement Pydantic models."""
from pydantic import BaseModel, Field

from api.config import COINS_PER_CORRECT, DEFAULT_REWARD_RATE


class SubmitAnswerRequest(BaseModel):
    """Model for submitting a single answer."""

    testId: str = Field(..., min_length=1)
    questionId: str = Field(..., min_length=1)
    correctOptionIndex: int = Field(..., ge=0)
    chosenOptionIndex: int | None = Field(None, ge=0)
    rewardRate: float = Field(DEFAULT_REWARD_RATE, ge=0)
    coinsPerCorrect: int = Field(COINS_PER_CORRECT, ge=0)
    examMode: bool = False


class SubmitAnswerResponse(BaseModel):
    """Award outcome for a submitted answer."""

    isCorrect: bool | None = None
    alreadyCorrect: bool = False
    awardedXP: int = 0
    awardedCoins: int = 0
    newXP: int
    newCoins: int
    examMode: bool = False


class UsageLimitsResponse(BaseModel):
    """Free-tier usage for a user."""

    subscriptionActive: bool
    remainingFreeQuestions: int


class AccountResponse(BaseModel):
    """Ledger balances for a user."""

    userId: str
    xp: int
    coins: int
    xpBoost: float
    achievements: list[str] = Field(default_factory=list)


class SubscriptionUpdate(BaseModel):
    """Model for toggling a subscription."""

    active: bool
