"""
Attempt and AttemptAnswer database models for test sessions.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.database import Base


class AttemptStatus(str, enum.Enum):
    """Status filter accepted when fetching an attempt."""

    UNFINISHED = "unfinished"
    FINISHED = "finished"


def _load_json_list(raw: str | None) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


class Attempt(Base):
    """
    Current attempt of one user at one test.
    Restarting overwrites the row; there is at most one per (user, test).
    """

    __tablename__ = "attempts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    test_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    selected_length: Mapped[int] = mapped_column(default=0, nullable=False)
    total_questions: Mapped[int] = mapped_column(default=0, nullable=False)
    current_position: Mapped[int] = mapped_column(default=0, nullable=False)
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    finished: Mapped[bool] = mapped_column(default=False, nullable=False)
    exam_mode: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Orderings (stored as JSON strings)
    presentation_order_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_order_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "test_id", name="uq_attempt_user_test"),
    )

    answers: Mapped[list["AttemptAnswer"]] = relationship(
        "AttemptAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AttemptAnswer.id",
    )

    @property
    def presentation_order(self) -> list[int]:
        """Parse presentation order from JSON."""
        return _load_json_list(self.presentation_order_json)

    @presentation_order.setter
    def presentation_order(self, value: list[int]) -> None:
        self.presentation_order_json = json.dumps(list(value))

    @property
    def option_order(self) -> list[list[int]]:
        """Parse option order from JSON."""
        return _load_json_list(self.option_order_json)

    @option_order.setter
    def option_order(self, value: list[list[int]]) -> None:
        self.option_order_json = json.dumps([list(order) for order in value])

    def __repr__(self) -> str:
        return (
            f"<Attempt(user_id='{self.user_id}', test_id='{self.test_id}', "
            f"position={self.current_position}, finished={self.finished})>"
        )


class AttemptAnswer(Base):
    """
    Answer to a single question within an attempt.
    A null chosen option index marks a skip.
    """

    __tablename__ = "attempt_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[int] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    chosen_option_index: Mapped[int | None] = mapped_column(nullable=True)
    correct_option_index: Mapped[int] = mapped_column(nullable=False)
    answered_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="answers")
