"""Account ledger and entitlement database models."""
from __future__ import annotations

import json
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base


class Account(Base):
    """XP/coin balances and free-tier usage for a user."""

    __tablename__ = "accounts"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    xp: Mapped[int] = mapped_column(default=0, nullable=False)
    coins: Mapped[int] = mapped_column(default=0, nullable=False)
    xp_boost: Mapped[float] = mapped_column(default=1.0, nullable=False)

    subscription_active: Mapped[bool] = mapped_column(default=False, nullable=False)
    free_questions_remaining: Mapped[int] = mapped_column(default=0, nullable=False)

    achievements_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def achievements(self) -> list[str]:
        """Parse unlocked achievement ids from JSON."""
        if not self.achievements_json:
            return []
        try:
            return json.loads(self.achievements_json)
        except (json.JSONDecodeError, TypeError):
            return []

    @achievements.setter
    def achievements(self, value: list[str]) -> None:
        self.achievements_json = json.dumps(value) if value else None


class CorrectAnswer(Base):
    """
    First correct answer of a user to a question.
    Its presence means later correct submissions are not awarded again.
    """

    __tablename__ = "correct_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    test_id: Mapped[str] = mapped_column(String(64), nullable=False)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "test_id", "question_id", name="uq_correct_answer"),
    )
