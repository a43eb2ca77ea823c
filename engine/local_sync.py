"""Progress synchronizer that talks to the services in-process."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from api.database import SessionLocal
from api.models import AttemptPayload, SubmitAnswerRequest
from api.models.db.attempt import AttemptStatus
from api.services import attempt_service, content_service, entitlement_service, ledger_service
from engine.errors import SyncError
from engine.ledger import AccountLedger
from engine.models import (
    AnswerAward,
    AnswerSubmission,
    Attempt,
    FinishAward,
    TestContent,
    UsageLimits,
)
from engine.sync import ProgressSynchronizer

logger = logging.getLogger(__name__)


class LocalProgressSynchronizer(ProgressSynchronizer):
    """Runs each operation in its own database session, like one API request."""

    def __init__(self, session_factory: Callable[[], DBSession] = SessionLocal) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _db(self, description: str) -> Iterator[DBSession]:
        db = self.session_factory()
        try:
            yield db
        except HTTPException as exc:
            db.rollback()
            raise SyncError(f"{description} failed: {exc.status_code} {exc.detail}") from exc
        except (SQLAlchemyError, ValidationError) as exc:
            db.rollback()
            raise SyncError(f"{description} failed: {exc}") from exc
        finally:
            db.close()

    def fetch_test(self, category: str, test_id: str) -> TestContent | None:
        try:
            payload = content_service.load_test_payload(category, test_id)
        except HTTPException as exc:
            if exc.status_code == 404:
                logger.info(f"Test {category}/{test_id} not found")
                return None
            raise SyncError(f"fetch_test failed: {exc.detail}") from exc
        return TestContent.from_payload(payload.model_dump())

    def fetch_attempt(
        self, user_id: str, test_id: str, status: str | None = None
    ) -> Attempt | None:
        status_filter = AttemptStatus(status) if status else None
        with self._db("fetch_attempt") as db:
            record = attempt_service.get_attempt(db, user_id, test_id, status_filter)
            if record is None:
                return None
            return Attempt.from_payload(attempt_service.serialize_attempt(record))

    def upsert_attempt(self, user_id: str, test_id: str, attempt: Attempt) -> None:
        with self._db("upsert_attempt") as db:
            payload = AttemptPayload.model_validate(attempt.to_payload())
            attempt_service.upsert_attempt(db, user_id, test_id, payload)

    def submit_answer(self, user_id: str, submission: AnswerSubmission) -> AnswerAward:
        with self._db("submit_answer") as db:
            request = SubmitAnswerRequest.model_validate(submission.to_payload())
            return AnswerAward.from_payload(ledger_service.submit_answer(db, user_id, request))

    def update_position(
        self, user_id: str, test_id: str, current_position: int, finished: bool
    ) -> None:
        with self._db("update_position") as db:
            attempt_service.update_position(db, user_id, test_id, current_position, finished)

    def finish_attempt(
        self, user_id: str, test_id: str, score: int, total: int, category: str | None = None
    ) -> FinishAward:
        with self._db("finish_attempt") as db:
            attempt = attempt_service.finish_attempt(db, user_id, test_id, score)
            data = ledger_service.finish_attempt_rewards(db, user_id, score, total, attempt)
            return FinishAward.from_payload(data)

    def fetch_usage_limits(self, user_id: str) -> UsageLimits:
        return self._limits("fetch_usage_limits", entitlement_service.get_usage_limits, user_id)

    def consume_question(self, user_id: str) -> UsageLimits:
        return self._limits("consume_question", entitlement_service.consume_question, user_id)

    def _limits(
        self, description: str, fn: Callable[[DBSession, str], dict[str, Any]], user_id: str
    ) -> UsageLimits:
        with self._db(description) as db:
            return UsageLimits.from_payload(fn(db, user_id))

    def fetch_account(self, user_id: str) -> AccountLedger:
        with self._db("fetch_account") as db:
            account = ledger_service.get_or_create_account(db, user_id)
            return AccountLedger.from_payload(ledger_service.serialize_account(account))
