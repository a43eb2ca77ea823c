"""Service layer for the free-tier question quota."""
import logging
from typing import Any

from sqlalchemy.orm import Session as DBSession

from api.services.ledger_service import get_or_create_account

logger = logging.getLogger(__name__)


def get_usage_limits(db: DBSession, user_id: str) -> dict[str, Any]:
    """Return subscription flag and remaining free questions."""
    account = get_or_create_account(db, user_id)
    return {
        "subscriptionActive": account.subscription_active,
        "remainingFreeQuestions": account.free_questions_remaining,
    }


def consume_question(db: DBSession, user_id: str) -> dict[str, Any]:
    """Consume one free question; subscribers and exhausted quotas are unchanged."""
    account = get_or_create_account(db, user_id)
    if not account.subscription_active and account.free_questions_remaining > 0:
        account.free_questions_remaining -= 1
        db.commit()
        db.refresh(account)
        if account.free_questions_remaining == 0:
            logger.info(f"User {user_id} exhausted the free question quota")
    return get_usage_limits(db, user_id)


def set_subscription(db: DBSession, user_id: str, active: bool) -> dict[str, Any]:
    """Activate or deactivate the subscription for a user."""
    account = get_or_create_account(db, user_id)
    account.subscription_active = active
    db.commit()
    db.refresh(account)
    logger.info(f"Subscription for {user_id} set to {active}")
    return get_usage_limits(db, user_id)
