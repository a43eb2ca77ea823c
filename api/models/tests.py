"""Test content Pydantic models."""
from pydantic import BaseModel, Field, model_validator

from api.config import DEFAULT_REWARD_RATE


class QuestionPayload(BaseModel):
    """A single multiple-choice question."""

    id: str = Field(..., min_length=1)
    prompt: str
    options: list[str]
    correctOptionIndex: int = Field(..., ge=0)
    explanation: str = ""
    examTip: str = ""

    @model_validator(mode="after")
    def check_correct_option(self) -> "QuestionPayload":
        if self.correctOptionIndex >= len(self.options):
            raise ValueError("correctOptionIndex is out of range")
        return self


class TestPayload(BaseModel):
    """Test document as stored in the content directory."""

    id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    name: str = ""
    rewardRatePerCorrect: float = Field(DEFAULT_REWARD_RATE, ge=0)
    questions: list[QuestionPayload] = Field(default_factory=list)


class TestMetadata(BaseModel):
    """Listing entry for a test."""

    id: str
    category: str
    name: str
    questionCount: int
