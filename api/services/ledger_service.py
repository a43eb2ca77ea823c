"""Service layer for XP/coin balances and achievements."""
import logging
import math
from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DBSession

from api.config import (
    ACCURACY_KING_PERCENT,
    COINS_PER_CORRECT,
    DEFAULT_REWARD_RATE,
    FREE_QUESTION_LIMIT,
    PERFECT_PERCENT,
)
from api.models.account import SubmitAnswerRequest
from api.models.db.account import Account, CorrectAnswer
from api.models.db.attempt import Attempt
from api.services.attempt_service import record_answer
from api.services.content_service import load_test_payload

logger = logging.getLogger(__name__)

ACHIEVEMENT_FIRST_TEST = "test_rookie"
ACHIEVEMENT_ACCURACY = "accuracy_king"
ACHIEVEMENT_PERFECT = "perfectionist_1"


def get_account(db: DBSession, user_id: str) -> Account | None:
    """Get account by user ID."""
    return db.get(Account, user_id)


def get_or_create_account(db: DBSession, user_id: str) -> Account:
    """Get the account for a user, creating it with a fresh free-tier quota."""
    account = get_account(db, user_id)
    if account is None:
        account = Account(
            user_id=user_id,
            xp=0,
            coins=0,
            xp_boost=1.0,
            subscription_active=False,
            free_questions_remaining=FREE_QUESTION_LIMIT,
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        logger.info(f"Created account for user {user_id}")
    return account


def _already_correct(db: DBSession, user_id: str, test_id: str, question_id: str) -> bool:
    query = select(CorrectAnswer.id).where(
        CorrectAnswer.user_id == user_id,
        CorrectAnswer.test_id == test_id,
        CorrectAnswer.question_id == question_id,
    )
    return db.execute(query).first() is not None


def submit_answer(db: DBSession, user_id: str, payload: SubmitAnswerRequest) -> dict[str, Any]:
    """
    Record one answer and award XP and coins for a first correct answer.

    A question is awarded at most once per user and test. Exam-mode answers
    are recorded without awards and without revealing correctness.
    """
    account = get_or_create_account(db, user_id)
    record_answer(
        db,
        user_id,
        payload.testId,
        payload.questionId,
        payload.chosenOptionIndex,
        payload.correctOptionIndex,
    )

    if payload.examMode:
        return {
            "isCorrect": None,
            "alreadyCorrect": False,
            "awardedXP": 0,
            "awardedCoins": 0,
            "newXP": account.xp,
            "newCoins": account.coins,
            "examMode": True,
        }

    is_correct = (
        payload.chosenOptionIndex is not None
        and payload.chosenOptionIndex == payload.correctOptionIndex
    )
    already_correct = is_correct and _already_correct(
        db, user_id, payload.testId, payload.questionId
    )

    awarded_xp = 0
    awarded_coins = 0
    if is_correct and not already_correct:
        awarded_xp = int(round(payload.rewardRate))
        awarded_coins = payload.coinsPerCorrect
        account.xp += awarded_xp
        account.coins += awarded_coins
        db.add(
            CorrectAnswer(
                user_id=user_id,
                test_id=payload.testId,
                question_id=payload.questionId,
            )
        )
        db.commit()
        db.refresh(account)
        logger.info(
            f"Awarded {awarded_xp} XP and {awarded_coins} coins to {user_id} "
            f"for {payload.testId}/{payload.questionId}"
        )

    return {
        "isCorrect": is_correct,
        "alreadyCorrect": already_correct,
        "awardedXP": awarded_xp,
        "awardedCoins": awarded_coins,
        "newXP": account.xp,
        "newCoins": account.coins,
        "examMode": False,
    }


def evaluate_achievements(score: int, total: int, earned: list[str]) -> list[str]:
    """Return achievement ids newly earned by a finished attempt."""
    unlocked: list[str] = []
    candidates = [ACHIEVEMENT_FIRST_TEST]
    if total > 0:
        percent = math.floor(score * 100 / total + 0.5)
        if percent >= ACCURACY_KING_PERCENT:
            candidates.append(ACHIEVEMENT_ACCURACY)
        if percent >= PERFECT_PERCENT:
            candidates.append(ACHIEVEMENT_PERFECT)
    for achievement in candidates:
        if achievement not in earned and achievement not in unlocked:
            unlocked.append(achievement)
    return unlocked


def _reward_rate_for(category: str, test_id: str) -> float:
    """XP per correct answer configured on the test, or the default rate."""
    if not category:
        return DEFAULT_REWARD_RATE
    try:
        return load_test_payload(category, test_id).rewardRatePerCorrect
    except HTTPException:
        logger.warning(f"No content for {category}/{test_id}; using default reward rate")
        return DEFAULT_REWARD_RATE


def _award_deferred_answers(db: DBSession, account: Account, attempt: Attempt) -> int:
    """
    Award exam-mode answers that are correct and not yet awarded.
    Returns the number of newly awarded answers.
    """
    xp_per_correct = int(round(_reward_rate_for(attempt.category, attempt.test_id) * account.xp_boost))
    awarded = 0
    for answer in attempt.answers:
        if answer.chosen_option_index is None:
            continue
        if answer.chosen_option_index != answer.correct_option_index:
            continue
        if _already_correct(db, account.user_id, attempt.test_id, answer.question_id):
            continue
        db.add(
            CorrectAnswer(
                user_id=account.user_id,
                test_id=attempt.test_id,
                question_id=answer.question_id,
            )
        )
        account.xp += xp_per_correct
        account.coins += COINS_PER_CORRECT
        awarded += 1
    return awarded


def finish_attempt_rewards(
    db: DBSession,
    user_id: str,
    score: int,
    total: int,
    attempt: Attempt | None = None,
) -> dict[str, Any]:
    """
    Unlock achievements for a finished attempt and report ledger totals.
    Exam-mode answers earn their deferred XP and coins here.
    """
    account = get_or_create_account(db, user_id)
    changed = False
    if attempt is not None and attempt.exam_mode:
        awarded = _award_deferred_answers(db, account, attempt)
        if awarded:
            changed = True
            logger.info(f"Awarded {awarded} exam answers to {user_id} for {attempt.test_id}")

    earned = account.achievements
    newly_unlocked = evaluate_achievements(score, total, earned)
    if newly_unlocked:
        account.achievements = earned + newly_unlocked
        changed = True
        logger.info(f"User {user_id} unlocked {', '.join(newly_unlocked)}")

    if changed:
        db.commit()
        db.refresh(account)

    return {
        "newXP": account.xp,
        "newCoins": account.coins,
        "newlyUnlocked": newly_unlocked,
    }


def serialize_account(account: Account) -> dict[str, Any]:
    """Serialize account balances to the wire format."""
    return {
        "userId": account.user_id,
        "xp": account.xp,
        "coins": account.coins,
        "xpBoost": account.xp_boost,
        "achievements": account.achievements,
    }
