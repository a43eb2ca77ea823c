"""Score calculation, grading and review filtering."""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from engine.models import AnswerRecord, Question


class AnswerStatus(str, enum.Enum):
    UNANSWERED = "unanswered"
    SKIPPED = "skipped"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class ReviewFilter(str, enum.Enum):
    ALL = "all"
    SKIPPED = "skipped"
    FLAGGED = "flagged"
    INCORRECT = "incorrect"
    CORRECT = "correct"


class Grade(str, enum.Enum):
    OUTSTANDING = "outstanding"
    EXCELLENT = "excellent"
    GREAT = "great"
    GOOD = "good"
    KEEP_PRACTICING = "keep_practicing"

    @property
    def label(self) -> str:
        return _GRADE_LABELS[self]


_GRADE_LABELS = {
    Grade.OUTSTANDING: "Outstanding!",
    Grade.EXCELLENT: "Excellent!",
    Grade.GREAT: "Great Job!",
    Grade.GOOD: "Good Effort!",
    Grade.KEEP_PRACTICING: "Keep Practicing!",
}


@dataclass(frozen=True)
class GradeBands:
    """Minimum percentage for each grade, highest first."""

    outstanding: int = 90
    excellent: int = 80
    great: int = 70
    good: int = 60

    def grade_for(self, percent: int) -> Grade:
        if percent >= self.outstanding:
            return Grade.OUTSTANDING
        if percent >= self.excellent:
            return Grade.EXCELLENT
        if percent >= self.great:
            return Grade.GREAT
        if percent >= self.good:
            return Grade.GOOD
        return Grade.KEEP_PRACTICING


@dataclass(frozen=True)
class FinishSummary:
    score: int
    total: int
    percentage: int
    grade: Grade


@dataclass(frozen=True)
class ReviewSummary:
    total: int
    correct: int
    incorrect: int
    skipped: int
    flagged: int


def compute_score(answers: Iterable[AnswerRecord]) -> int:
    """Count answers whose chosen option is the correct one."""
    return sum(1 for answer in answers if answer.is_correct)


def percentage(score: int, total: int) -> int:
    """Whole-number percentage, rounding halves up."""
    if total <= 0:
        return 0
    return int(math.floor(score / total * 100 + 0.5))


def summarize_finish(score: int, total: int, bands: GradeBands | None = None) -> FinishSummary:
    percent = percentage(score, total)
    return FinishSummary(
        score=score,
        total=total,
        percentage=percent,
        grade=(bands or GradeBands()).grade_for(percent),
    )


def _answers_by_question(
    answers: Iterable[AnswerRecord] | Mapping[str, AnswerRecord],
) -> Mapping[str, AnswerRecord]:
    if isinstance(answers, Mapping):
        return answers
    return {answer.question_id: answer for answer in answers}


def classify(
    question: Question,
    answers: Iterable[AnswerRecord] | Mapping[str, AnswerRecord],
) -> AnswerStatus:
    answer = _answers_by_question(answers).get(question.id)
    if answer is None:
        return AnswerStatus.UNANSWERED
    if answer.is_skipped:
        return AnswerStatus.SKIPPED
    if answer.chosen_option_index == question.correct_option_index:
        return AnswerStatus.CORRECT
    return AnswerStatus.INCORRECT


def filter_for_review(
    questions: Sequence[Question],
    selected_length: int,
    answers: Iterable[AnswerRecord],
    flagged: Iterable[str],
    kind: ReviewFilter | str = ReviewFilter.ALL,
) -> list[Question]:
    """Questions matching ``kind`` among the first ``selected_length`` in natural order.

    A question without an answer record counts as skipped.
    """
    kind = ReviewFilter(kind)
    by_question = _answers_by_question(answers)
    flagged_ids = set(flagged)

    result = []
    for question in questions[:selected_length]:
        status = classify(question, by_question)
        if kind is ReviewFilter.ALL:
            matched = True
        elif kind is ReviewFilter.SKIPPED:
            matched = status in (AnswerStatus.SKIPPED, AnswerStatus.UNANSWERED)
        elif kind is ReviewFilter.FLAGGED:
            matched = question.id in flagged_ids
        elif kind is ReviewFilter.INCORRECT:
            matched = status is AnswerStatus.INCORRECT
        else:
            matched = status is AnswerStatus.CORRECT
        if matched:
            result.append(question)
    return result


def summarize_review(
    questions: Sequence[Question],
    selected_length: int,
    answers: Iterable[AnswerRecord],
    flagged: Iterable[str],
) -> ReviewSummary:
    by_question = _answers_by_question(answers)
    flagged_ids = set(flagged)
    selected = questions[:selected_length]
    statuses = [classify(question, by_question) for question in selected]
    return ReviewSummary(
        total=len(selected),
        correct=statuses.count(AnswerStatus.CORRECT),
        incorrect=statuses.count(AnswerStatus.INCORRECT),
        skipped=statuses.count(AnswerStatus.SKIPPED) + statuses.count(AnswerStatus.UNANSWERED),
        flagged=sum(1 for question in selected if question.id in flagged_ids),
    )
