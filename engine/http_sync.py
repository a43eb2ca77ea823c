"""Progress synchronizer backed by the attempt store's HTTP API."""
from __future__ import annotations

import logging
from typing import Any

import requests

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

log = logging.getLogger(__name__)


class HttpProgressSynchronizer(ProgressSynchronizer):
    def __init__(self, base_url: str, timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_config(cls) -> HttpProgressSynchronizer:
        from api.config import API_BASE_URL, SYNC_TIMEOUT_SECONDS

        return cls(API_BASE_URL, timeout=SYNC_TIMEOUT_SECONDS)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api{path}"

    def _handle(self, response: requests.Response, allow_missing: bool = False) -> Any:
        if allow_missing and response.status_code == 404:
            return None
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise SyncError(f"{response.url} returned {response.status_code}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise SyncError(f"{response.url} returned a non-JSON body") from exc

    def _get(self, path: str, params: dict[str, Any] | None = None, allow_missing: bool = False) -> Any:
        try:
            response = self.session.get(self._url(path), params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SyncError(f"GET {path} failed: {exc}") from exc
        return self._handle(response, allow_missing)

    def _post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        try:
            response = self.session.post(self._url(path), json=payload or {}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SyncError(f"POST {path} failed: {exc}") from exc
        return self._handle(response)

    def fetch_test(self, category: str, test_id: str) -> TestContent | None:
        data = self._get(f"/tests/{category}/{test_id}", allow_missing=True)
        if data is None:
            log.info(f"Test {category}/{test_id} not found")
            return None
        return TestContent.from_payload(data)

    def fetch_attempt(
        self, user_id: str, test_id: str, status: str | None = None
    ) -> Attempt | None:
        params = {"status": status} if status else None
        data = self._get(f"/attempts/{user_id}/{test_id}", params=params, allow_missing=True)
        attempt = (data or {}).get("attempt")
        if not attempt:
            return None
        return Attempt.from_payload(attempt, user_id=user_id, test_id=test_id)

    def upsert_attempt(self, user_id: str, test_id: str, attempt: Attempt) -> None:
        self._post(f"/attempts/{user_id}/{test_id}", attempt.to_payload())

    def submit_answer(self, user_id: str, submission: AnswerSubmission) -> AnswerAward:
        data = self._post(f"/users/{user_id}/submit-answer", submission.to_payload())
        return AnswerAward.from_payload(data)

    def update_position(
        self, user_id: str, test_id: str, current_position: int, finished: bool
    ) -> None:
        self._post(
            f"/attempts/{user_id}/{test_id}/position",
            {"currentPosition": current_position, "finished": finished},
        )

    def finish_attempt(
        self, user_id: str, test_id: str, score: int, total: int, category: str | None = None
    ) -> FinishAward:
        data = self._post(
            f"/attempts/{user_id}/{test_id}/finish",
            {"score": score, "totalQuestions": total, "category": category},
        )
        return FinishAward.from_payload(data)

    def fetch_usage_limits(self, user_id: str) -> UsageLimits:
        return UsageLimits.from_payload(self._get(f"/users/{user_id}/usage-limits"))

    def consume_question(self, user_id: str) -> UsageLimits:
        return UsageLimits.from_payload(self._post(f"/users/{user_id}/usage-limits/consume"))

    def fetch_account(self, user_id: str) -> AccountLedger:
        return AccountLedger.from_payload(self._get(f"/users/{user_id}/account"))
