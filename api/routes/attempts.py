"""Attempt management endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models import (
    AttemptEnvelope,
    AttemptListResponse,
    AttemptPayload,
    AttemptResponse,
    FinishRequest,
    FinishResponse,
    PositionUpdate,
)
from api.models.db.attempt import AttemptStatus
from api.services import attempt_service, ledger_service
from api.utils import validate_id, validate_test_exists, validate_test_id

router = APIRouter(prefix="/api/attempts/{user_id}", tags=["attempts"])


@router.get("/list", response_model=AttemptListResponse)
def list_attempts(
    user_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> dict[str, object]:
    """List a user's attempts, most recently updated first."""
    user_id = validate_id("userId", user_id)
    offset = (page - 1) * page_size
    attempts = attempt_service.get_attempts_by_user(db, user_id, limit=page_size, offset=offset)
    return {
        "attempts": [attempt_service.serialize_attempt_summary(a) for a in attempts],
        "page": page,
        "page_size": page_size,
        "total": attempt_service.count_attempts(db, user_id),
    }


@router.get("/{test_id}", response_model=AttemptEnvelope)
def get_attempt(
    user_id: str,
    test_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    status: AttemptStatus | None = None,
) -> dict[str, object]:
    """Get the attempt for (user, test); null when none matches the status."""
    user_id = validate_id("userId", user_id)
    test_id = validate_test_id(test_id)
    attempt = attempt_service.get_attempt(db, user_id, test_id, status)
    if attempt is None:
        return {"attempt": None}
    return {"attempt": attempt_service.serialize_attempt(attempt)}


@router.post("/{test_id}", response_model=AttemptResponse)
def upsert_attempt(
    user_id: str,
    test_id: str,
    payload: AttemptPayload,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Create or replace the attempt for (user, test)."""
    user_id = validate_id("userId", user_id)
    test_id = validate_test_id(test_id)
    if len(payload.presentationOrder) != payload.selectedLength:
        raise HTTPException(status_code=400, detail="presentationOrder length mismatch")
    if payload.selectedLength > payload.totalQuestions:
        raise HTTPException(status_code=400, detail="selectedLength out of range")
    if payload.category:
        validate_test_exists(validate_id("category", payload.category), test_id)
    attempt = attempt_service.upsert_attempt(db, user_id, test_id, payload)
    return attempt_service.serialize_attempt(attempt)


@router.post("/{test_id}/position", response_model=AttemptResponse)
def update_position(
    user_id: str,
    test_id: str,
    payload: PositionUpdate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Persist the current position and finished flag."""
    user_id = validate_id("userId", user_id)
    test_id = validate_test_id(test_id)
    attempt = attempt_service.update_position(
        db, user_id, test_id, payload.currentPosition, payload.finished
    )
    return attempt_service.serialize_attempt(attempt)


@router.post("/{test_id}/finish", response_model=FinishResponse)
def finish_attempt(
    user_id: str,
    test_id: str,
    payload: FinishRequest,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Mark an attempt finished, award deferred exam answers and evaluate achievements."""
    user_id = validate_id("userId", user_id)
    test_id = validate_test_id(test_id)
    if payload.score > payload.totalQuestions:
        raise HTTPException(status_code=400, detail="score exceeds totalQuestions")
    attempt = attempt_service.finish_attempt(db, user_id, test_id, payload.score)
    return ledger_service.finish_attempt_rewards(
        db, user_id, payload.score, payload.totalQuestions, attempt
    )
