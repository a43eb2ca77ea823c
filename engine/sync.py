"""Progress synchronizer interface and fire-and-forget dispatch."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from engine.ledger import AccountLedger
from engine.models import (
    AnswerAward,
    AnswerSubmission,
    Attempt,
    FinishAward,
    TestContent,
    UsageLimits,
)

logger = logging.getLogger(__name__)

STATUS_FINISHED = "finished"
STATUS_UNFINISHED = "unfinished"


class ProgressSynchronizer(ABC):
    """Operations the session engine needs from the attempt store,
    account ledger, entitlement service and content store.

    Implementations raise ``SyncError`` on transport or remote failures.
    """

    @abstractmethod
    def fetch_test(self, category: str, test_id: str) -> TestContent | None:
        ...

    @abstractmethod
    def fetch_attempt(
        self, user_id: str, test_id: str, status: str | None = None
    ) -> Attempt | None:
        ...

    @abstractmethod
    def upsert_attempt(self, user_id: str, test_id: str, attempt: Attempt) -> None:
        ...

    @abstractmethod
    def submit_answer(self, user_id: str, submission: AnswerSubmission) -> AnswerAward:
        ...

    @abstractmethod
    def update_position(
        self, user_id: str, test_id: str, current_position: int, finished: bool
    ) -> None:
        ...

    @abstractmethod
    def finish_attempt(
        self, user_id: str, test_id: str, score: int, total: int, category: str | None = None
    ) -> FinishAward:
        ...

    @abstractmethod
    def fetch_usage_limits(self, user_id: str) -> UsageLimits:
        ...

    @abstractmethod
    def consume_question(self, user_id: str) -> UsageLimits:
        ...

    @abstractmethod
    def fetch_account(self, user_id: str) -> AccountLedger:
        ...


def _run(
    description: str,
    fn: Callable[..., Any],
    args: tuple[Any, ...],
    on_success: Callable[[Any], None] | None,
) -> None:
    try:
        result = fn(*args)
    except Exception:
        # Local state stays authoritative; the next write re-sends full state.
        logger.exception(f"Progress sync failed: {description}")
        return
    if on_success is None:
        return
    try:
        on_success(result)
    except Exception:
        logger.exception(f"Progress sync callback failed: {description}")


class Dispatcher(ABC):
    """Runs synchronizer calls without letting their failures reach the caller."""

    @abstractmethod
    def submit(
        self,
        description: str,
        fn: Callable[..., Any],
        *args: Any,
        on_success: Callable[[Any], None] | None = None,
    ) -> None:
        ...

    def flush(self, timeout: float | None = None) -> None:
        """Block until every submitted call has run."""

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work."""


class InlineDispatcher(Dispatcher):
    """Runs each call immediately on the caller's thread."""

    def submit(self, description, fn, *args, on_success=None) -> None:
        _run(description, fn, args, on_success)


class BackgroundDispatcher(Dispatcher):
    """
    Single worker thread so writes reach the store in transition order.
    Calls are never awaited by the session.
    """

    def __init__(self, thread_name_prefix: str = "progress-sync") -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=thread_name_prefix
        )
        self._closed = False

    def submit(self, description, fn, *args, on_success=None) -> None:
        if self._closed:
            logger.warning(f"Dispatcher closed; dropping {description}")
            return
        self._executor.submit(_run, description, fn, args, on_success)

    def flush(self, timeout: float | None = None) -> None:
        if self._closed:
            return
        self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self, wait: bool = False) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)
