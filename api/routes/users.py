"""Per-user ledger and entitlement endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models import (
    AccountResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SubscriptionUpdate,
    UsageLimitsResponse,
)
from api.services import entitlement_service, ledger_service
from api.utils import validate_id, validate_test_id

router = APIRouter(prefix="/api/users/{user_id}", tags=["users"])


@router.post("/submit-answer", response_model=SubmitAnswerResponse)
def submit_answer(
    user_id: str,
    payload: SubmitAnswerRequest,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Record an answer and award a first correct answer."""
    user_id = validate_id("userId", user_id)
    validate_test_id(payload.testId)
    return ledger_service.submit_answer(db, user_id, payload)


@router.get("/usage-limits", response_model=UsageLimitsResponse)
def get_usage_limits(
    user_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get the free-tier quota for a user."""
    user_id = validate_id("userId", user_id)
    return entitlement_service.get_usage_limits(db, user_id)


@router.post("/usage-limits/consume", response_model=UsageLimitsResponse)
def consume_question(
    user_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Consume one free question."""
    user_id = validate_id("userId", user_id)
    return entitlement_service.consume_question(db, user_id)


@router.post("/subscription", response_model=UsageLimitsResponse)
def update_subscription(
    user_id: str,
    payload: SubscriptionUpdate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Activate or deactivate a subscription."""
    user_id = validate_id("userId", user_id)
    return entitlement_service.set_subscription(db, user_id, payload.active)


@router.get("/account", response_model=AccountResponse)
def get_account(
    user_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get XP, coins, boost and achievements for a user."""
    user_id = validate_id("userId", user_id)
    account = ledger_service.get_or_create_account(db, user_id)
    return ledger_service.serialize_account(account)
