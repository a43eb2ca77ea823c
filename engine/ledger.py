"""Client-side view of a user's XP and coin balances."""
from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from engine.models import AnswerAward, FinishAward

logger = logging.getLogger(__name__)


class AccountLedger:
    """
    Aggregate updated only by discrete award events.

    Awards arrive from the sync dispatcher thread, so field updates are
    serialized with a lock.
    """

    def __init__(
        self,
        user_id: str,
        xp: int = 0,
        coins: int = 0,
        xp_boost: float = 1.0,
        achievements: Iterable[str] = (),
    ) -> None:
        self.user_id = user_id
        self.xp = xp
        self.coins = coins
        self.xp_boost = xp_boost
        self.achievements: set[str] = set(achievements)
        self.events: list[AnswerAward | FinishAward] = []
        self._lock = threading.Lock()

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> AccountLedger:
        return cls(
            user_id=str(data["userId"]),
            xp=int(data.get("xp") or 0),
            coins=int(data.get("coins") or 0),
            xp_boost=float(data.get("xpBoost") or 1.0),
            achievements=data.get("achievements") or (),
        )

    def apply_answer_award(self, award: AnswerAward) -> bool:
        """Apply a practice-mode answer award. Returns whether balances changed."""
        if award.exam_mode or not award.is_correct or award.already_correct:
            return False
        with self._lock:
            self.xp = award.new_xp if award.new_xp is not None else self.xp + award.awarded_xp
            self.coins = (
                award.new_coins if award.new_coins is not None else self.coins + award.awarded_coins
            )
            self.events.append(award)
        logger.debug(f"Ledger {self.user_id}: answer award -> xp={self.xp} coins={self.coins}")
        return True

    def apply_finish_award(self, award: FinishAward) -> None:
        with self._lock:
            if award.new_xp is not None:
                self.xp = award.new_xp
            if award.new_coins is not None:
                self.coins = award.new_coins
            self.achievements.update(award.newly_unlocked)
            self.events.append(award)
        if award.newly_unlocked:
            logger.info(
                f"Ledger {self.user_id}: unlocked {', '.join(award.newly_unlocked)}"
            )
