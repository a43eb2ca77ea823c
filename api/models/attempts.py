"""Attempt-related Pydantic models."""
from pydantic import BaseModel, Field


class AnswerPayload(BaseModel):
    """One answer record; a null chosenOptionIndex marks a skip."""

    questionId: str = Field(..., min_length=1)
    chosenOptionIndex: int | None = Field(None, ge=0)
    correctOptionIndex: int = Field(..., ge=0)


class AttemptPayload(BaseModel):
    """Full attempt state sent on every upsert."""

    category: str = ""
    selectedLength: int = Field(..., ge=0)
    totalQuestions: int = Field(0, ge=0)
    presentationOrder: list[int] = Field(default_factory=list)
    optionOrder: list[list[int]] = Field(default_factory=list)
    answers: list[AnswerPayload] = Field(default_factory=list)
    currentPosition: int = Field(0, ge=0)
    score: int = Field(0, ge=0)
    finished: bool = False
    examMode: bool = False


class AttemptResponse(AttemptPayload):
    """Stored attempt as returned to clients."""

    userId: str
    testId: str
    startedAt: str | None = None
    updatedAt: str | None = None
    finishedAt: str | None = None


class AttemptEnvelope(BaseModel):
    """Attempt lookup result; attempt is null when none matches."""

    attempt: AttemptResponse | None = None


class AttemptListResponse(BaseModel):
    """Paginated attempt summaries for a user."""

    attempts: list[dict[str, object]]
    page: int
    page_size: int
    total: int


class PositionUpdate(BaseModel):
    """Model for a position change."""

    currentPosition: int = Field(..., ge=0)
    finished: bool = False


class FinishRequest(BaseModel):
    """Model for finishing an attempt."""

    score: int = Field(..., ge=0)
    totalQuestions: int = Field(..., ge=0)
    category: str | None = None


class FinishResponse(BaseModel):
    """Ledger totals after finishing."""

    newXP: int
    newCoins: int
    newlyUnlocked: list[str] = Field(default_factory=list)
