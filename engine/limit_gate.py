"""Free-tier question limit around answer and skip actions."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from engine.models import UsageLimits
from engine.session import ActionResult, ActionStatus, AttemptSession

logger = logging.getLogger(__name__)

LIMIT_REACHED_MESSAGE = (
    "You have used all your free practice questions. "
    "Upgrade to premium for unlimited access."
)


class QuestionLimitGate:
    """
    Gates ``select_option`` and ``skip`` for users without a subscription.

    Each accepted action consumes one free question; rejected actions consume
    nothing. Subscribed users are never gated.
    """

    def __init__(self, session: AttemptSession, limits: UsageLimits) -> None:
        self.session = session
        self.limits = limits

    @classmethod
    def for_session(cls, session: AttemptSession) -> QuestionLimitGate:
        """Build a gate with limits fetched from the entitlement service."""
        limits = session.synchronizer.fetch_usage_limits(session.user_id)
        return cls(session, limits)

    @property
    def remaining(self) -> int:
        return self.limits.remaining_free_questions

    @property
    def bypassed(self) -> bool:
        return self.limits.subscription_active

    def select_option(self, display_index: int) -> ActionResult:
        return self._gated(lambda: self.session.select_option(display_index))

    def skip(self) -> ActionResult:
        return self._gated(self.session.skip)

    def _gated(self, action: Callable[[], ActionResult]) -> ActionResult:
        if self.bypassed:
            return action()
        if self.remaining <= 0:
            return ActionResult.rejected(ActionStatus.LIMIT_REACHED, LIMIT_REACHED_MESSAGE)
        result = action()
        if result.ok:
            self._consume()
        return result

    def _consume(self) -> None:
        self.limits = replace(
            self.limits, remaining_free_questions=max(0, self.remaining - 1)
        )
        logger.debug(f"Free questions left for {self.session.user_id}: {self.remaining}")
        self.session.dispatcher.submit(
            "consume question",
            self.session.synchronizer.consume_question,
            self.session.user_id,
        )
