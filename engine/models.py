"""Domain types shared by the session engine and its synchronizers.

Wire payloads use the camelCase keys the attempt store speaks; the
``from_payload``/``to_payload`` helpers are the only place that mapping lives.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from api.config import DEFAULT_REWARD_RATE


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    options: tuple[str, ...]
    correct_option_index: int
    explanation: str = ""
    exam_tip: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> Question:
        return cls(
            id=str(data["id"]),
            prompt=data.get("prompt", ""),
            options=tuple(data.get("options", [])),
            correct_option_index=int(data["correctOptionIndex"]),
            explanation=data.get("explanation") or "",
            exam_tip=data.get("examTip") or "",
        )


@dataclass(frozen=True)
class TestContent:
    """Immutable test as served by the content store."""

    __test__ = False

    id: str
    category: str
    questions: tuple[Question, ...]
    name: str = ""
    reward_rate_per_correct: float = DEFAULT_REWARD_RATE

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> TestContent:
        return cls(
            id=str(data["id"]),
            category=data.get("category", ""),
            name=data.get("name", ""),
            questions=tuple(Question.from_payload(q) for q in data.get("questions", [])),
            reward_rate_per_correct=float(data.get("rewardRatePerCorrect", DEFAULT_REWARD_RATE)),
        )


@dataclass
class AnswerRecord:
    question_id: str
    chosen_option_index: int | None
    correct_option_index: int

    @property
    def is_skipped(self) -> bool:
        return self.chosen_option_index is None

    @property
    def is_correct(self) -> bool:
        return (
            self.chosen_option_index is not None
            and self.chosen_option_index == self.correct_option_index
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "chosenOptionIndex": self.chosen_option_index,
            "correctOptionIndex": self.correct_option_index,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AnswerRecord:
        chosen = data.get("chosenOptionIndex")
        return cls(
            question_id=str(data["questionId"]),
            chosen_option_index=int(chosen) if chosen is not None else None,
            correct_option_index=int(data["correctOptionIndex"]),
        )


@dataclass
class Attempt:
    """Working copy of one user's progress through one test."""

    user_id: str
    test_id: str
    category: str
    selected_length: int
    total_questions: int
    presentation_order: list[int] = field(default_factory=list)
    option_order: list[list[int]] = field(default_factory=list)
    answers: list[AnswerRecord] = field(default_factory=list)
    current_position: int = 0
    # Advisory only; recomputed from answers on finish.
    score: int = 0
    finished: bool = False
    exam_mode: bool = False

    def find_answer(self, question_id: str) -> AnswerRecord | None:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def upsert_answer(self, record: AnswerRecord) -> None:
        """Replace the answer for ``record.question_id`` or append it."""
        for index, existing in enumerate(self.answers):
            if existing.question_id == record.question_id:
                self.answers[index] = record
                return
        self.answers.append(record)

    def copy(self) -> Attempt:
        return copy.deepcopy(self)

    def to_payload(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "testId": self.test_id,
            "category": self.category,
            "selectedLength": self.selected_length,
            "totalQuestions": self.total_questions,
            "presentationOrder": list(self.presentation_order),
            "optionOrder": [list(order) for order in self.option_order],
            "answers": [answer.to_payload() for answer in self.answers],
            "currentPosition": self.current_position,
            "score": self.score,
            "finished": self.finished,
            "examMode": self.exam_mode,
        }

    @classmethod
    def from_payload(
        cls, data: dict[str, Any], user_id: str | None = None, test_id: str | None = None
    ) -> Attempt:
        presentation = data.get("presentationOrder")
        options = data.get("optionOrder")
        return cls(
            user_id=str(data.get("userId") or user_id or ""),
            test_id=str(data.get("testId") or test_id or ""),
            category=data.get("category") or "",
            selected_length=int(data.get("selectedLength") or 0),
            total_questions=int(data.get("totalQuestions") or 0),
            presentation_order=list(presentation) if isinstance(presentation, list) else [],
            option_order=(
                [list(order) if isinstance(order, list) else [] for order in options]
                if isinstance(options, list)
                else []
            ),
            answers=[AnswerRecord.from_payload(a) for a in data.get("answers") or []],
            current_position=int(data.get("currentPosition") or 0),
            score=int(data.get("score") or 0),
            finished=data.get("finished") is True,
            exam_mode=data.get("examMode") is True,
        )


@dataclass(frozen=True)
class UsageLimits:
    subscription_active: bool
    remaining_free_questions: int

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> UsageLimits:
        return cls(
            subscription_active=data.get("subscriptionActive") is True,
            remaining_free_questions=max(0, int(data.get("remainingFreeQuestions") or 0)),
        )


@dataclass(frozen=True)
class AnswerSubmission:
    test_id: str
    question_id: str
    correct_option_index: int
    chosen_option_index: int | None
    reward_rate: float
    coins_per_correct: int
    exam_mode: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "testId": self.test_id,
            "questionId": self.question_id,
            "correctOptionIndex": self.correct_option_index,
            "chosenOptionIndex": self.chosen_option_index,
            "rewardRate": self.reward_rate,
            "coinsPerCorrect": self.coins_per_correct,
            "examMode": self.exam_mode,
        }


@dataclass(frozen=True)
class AnswerAward:
    is_correct: bool
    already_correct: bool = False
    awarded_xp: int = 0
    awarded_coins: int = 0
    new_xp: int | None = None
    new_coins: int | None = None
    exam_mode: bool = False

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AnswerAward:
        return cls(
            is_correct=data.get("isCorrect") is True,
            already_correct=data.get("alreadyCorrect") is True,
            awarded_xp=int(data.get("awardedXP") or 0),
            awarded_coins=int(data.get("awardedCoins") or 0),
            new_xp=data.get("newXP"),
            new_coins=data.get("newCoins"),
            exam_mode=data.get("examMode") is True,
        )


@dataclass(frozen=True)
class FinishAward:
    new_xp: int | None = None
    new_coins: int | None = None
    newly_unlocked: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> FinishAward:
        return cls(
            new_xp=data.get("newXP"),
            new_coins=data.get("newCoins"),
            newly_unlocked=tuple(data.get("newlyUnlocked") or ()),
        )
