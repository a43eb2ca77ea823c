"""Service layer for the attempt store using SQLite database."""
from typing import Any

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session as DBSession, selectinload

from api.models.attempts import AttemptPayload
from api.models.db.attempt import Attempt, AttemptAnswer, AttemptStatus
from api.utils import isoformat_or_none, utc_now


def get_attempt(
    db: DBSession,
    user_id: str,
    test_id: str,
    status: AttemptStatus | None = None,
) -> Attempt | None:
    """Get the attempt for (user, test), optionally filtered by status."""
    query = (
        select(Attempt)
        .options(selectinload(Attempt.answers))
        .where(Attempt.user_id == user_id, Attempt.test_id == test_id)
    )
    if status is AttemptStatus.FINISHED:
        query = query.where(Attempt.finished.is_(True))
    elif status is AttemptStatus.UNFINISHED:
        query = query.where(Attempt.finished.is_(False))
    return db.execute(query).scalar_one_or_none()


def require_attempt(db: DBSession, user_id: str, test_id: str) -> Attempt:
    """Get the attempt for (user, test) or raise 404."""
    attempt = get_attempt(db, user_id, test_id)
    if not attempt:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return attempt


def upsert_attempt(
    db: DBSession,
    user_id: str,
    test_id: str,
    payload: AttemptPayload,
) -> Attempt:
    """
    Create or fully replace the attempt for (user, test).
    The last writer wins; answers are replaced as a whole.
    """
    attempt = get_attempt(db, user_id, test_id)
    if attempt is None:
        attempt = Attempt(user_id=user_id, test_id=test_id)
        db.add(attempt)
    elif attempt.finished and not payload.finished:
        # Restart overwrites the finished attempt with a fresh one
        attempt.started_at = utc_now()
        attempt.finished_at = None

    attempt.category = payload.category
    attempt.selected_length = payload.selectedLength
    attempt.total_questions = payload.totalQuestions
    attempt.presentation_order = payload.presentationOrder
    attempt.option_order = payload.optionOrder
    attempt.current_position = payload.currentPosition
    attempt.score = payload.score
    if payload.finished and not attempt.finished:
        attempt.finished_at = utc_now()
    attempt.finished = payload.finished
    attempt.exam_mode = payload.examMode

    # Flush removals before inserts so the (attempt, question) constraint holds
    attempt.answers.clear()
    db.flush()
    # At most one record per question; the latest one wins
    latest = {answer.questionId: answer for answer in payload.answers}
    for answer in latest.values():
        attempt.answers.append(
            AttemptAnswer(
                question_id=answer.questionId,
                chosen_option_index=answer.chosenOptionIndex,
                correct_option_index=answer.correctOptionIndex,
            )
        )

    db.commit()
    db.refresh(attempt)
    return attempt


def record_answer(
    db: DBSession,
    user_id: str,
    test_id: str,
    question_id: str,
    chosen_option_index: int | None,
    correct_option_index: int,
) -> AttemptAnswer | None:
    """
    Record or replace the answer to one question in the unfinished attempt.
    Returns None when the user has no unfinished attempt at the test.
    """
    attempt = get_attempt(db, user_id, test_id, AttemptStatus.UNFINISHED)
    if attempt is None:
        return None

    answer = next((a for a in attempt.answers if a.question_id == question_id), None)
    if answer is None:
        answer = AttemptAnswer(question_id=question_id, correct_option_index=correct_option_index)
        attempt.answers.append(answer)

    answer.chosen_option_index = chosen_option_index
    answer.correct_option_index = correct_option_index
    answer.answered_at = utc_now()
    attempt.updated_at = utc_now()

    db.commit()
    db.refresh(answer)
    return answer


def update_position(
    db: DBSession,
    user_id: str,
    test_id: str,
    current_position: int,
    finished: bool = False,
) -> Attempt:
    """Update the current position and finished flag."""
    attempt = require_attempt(db, user_id, test_id)
    if attempt.selected_length and current_position >= attempt.selected_length:
        raise HTTPException(status_code=400, detail="currentPosition out of range")

    attempt.current_position = current_position
    if finished and not attempt.finished:
        attempt.finished = True
        attempt.finished_at = utc_now()

    db.commit()
    db.refresh(attempt)
    return attempt


def finish_attempt(db: DBSession, user_id: str, test_id: str, score: int) -> Attempt:
    """Mark the attempt finished with the client's recomputed score."""
    attempt = require_attempt(db, user_id, test_id)
    attempt.score = score
    if not attempt.finished:
        attempt.finished = True
        attempt.finished_at = utc_now()

    db.commit()
    db.refresh(attempt)
    return attempt


def get_attempts_by_user(
    db: DBSession,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
) -> list[Attempt]:
    """Get attempts for a user, most recently updated first."""
    query = (
        select(Attempt)
        .where(Attempt.user_id == user_id)
        .order_by(Attempt.updated_at.desc(), Attempt.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.execute(query).scalars().all())


def count_attempts(
    db: DBSession,
    user_id: str,
    finished: bool | None = None,
) -> int:
    """Count attempts matching criteria."""
    query = select(func.count(Attempt.id)).where(Attempt.user_id == user_id)
    if finished is not None:
        query = query.where(Attempt.finished.is_(finished))
    return db.execute(query).scalar() or 0


def serialize_attempt(attempt: Attempt) -> dict[str, Any]:
    """Serialize attempt to the wire format used by session clients."""
    return {
        "userId": attempt.user_id,
        "testId": attempt.test_id,
        "category": attempt.category,
        "selectedLength": attempt.selected_length,
        "totalQuestions": attempt.total_questions,
        "presentationOrder": attempt.presentation_order,
        "optionOrder": attempt.option_order,
        "answers": [
            {
                "questionId": answer.question_id,
                "chosenOptionIndex": answer.chosen_option_index,
                "correctOptionIndex": answer.correct_option_index,
            }
            for answer in attempt.answers
        ],
        "currentPosition": attempt.current_position,
        "score": attempt.score,
        "finished": attempt.finished,
        "examMode": attempt.exam_mode,
        "startedAt": isoformat_or_none(attempt.started_at),
        "updatedAt": isoformat_or_none(attempt.updated_at),
        "finishedAt": isoformat_or_none(attempt.finished_at),
    }


def serialize_attempt_summary(attempt: Attempt) -> dict[str, Any]:
    """Serialize attempt without orderings or answers, for listings."""
    return {
        "testId": attempt.test_id,
        "category": attempt.category,
        "selectedLength": attempt.selected_length,
        "currentPosition": attempt.current_position,
        "score": attempt.score,
        "finished": attempt.finished,
        "examMode": attempt.exam_mode,
        "updatedAt": isoformat_or_none(attempt.updated_at),
        "finishedAt": isoformat_or_none(attempt.finished_at),
    }
