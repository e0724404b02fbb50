from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional

from kv_store import KeyValueStore
from week_clock import calendar_day

logger = logging.getLogger(__name__)

LOCKED = "locked"

FATIGUE = "fatigue"
TARGETED = "targeted"
RECALIBRATION = "recalibration"


@dataclass
class AdjustmentResult:
    ok: bool
    value: Any = None
    reason: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self.reason == LOCKED


class DailyAdjustmentGate:
    """
    At most one plan-mutating adjustment per (user, calendar day).

    Fatigue changes, targeted generation and missed-day recalibration share the
    same lock. A lock is never cleared; the next calendar day is simply a new key.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _key(user_id: str, day: date | datetime):
        return ("adjustment_lock", user_id, calendar_day(day).isoformat())

    def is_locked(self, user_id: str, day: date | datetime) -> bool:
        record = self.store.get(self._key(user_id, day))
        return bool(record and record.get("locked"))

    def lock_info(self, user_id: str, day: date | datetime) -> Optional[dict]:
        return self.store.get(self._key(user_id, day))

    def try_adjust(
        self,
        user_id: str,
        day: date | datetime,
        mutation: Callable[[], Any],
        trigger: str = "adjustment",
    ) -> AdjustmentResult:
        """
        Run `mutation` unless today's quota is spent.

        Exceptions raised by the mutation propagate and leave the day unlocked.
        """
        if self.is_locked(user_id, day):
            logger.warning(
                "Refused %s for user %s on %s: daily adjustment already used",
                trigger,
                user_id,
                calendar_day(day).isoformat(),
            )
            return AdjustmentResult(ok=False, reason=LOCKED)

        value = mutation()
        self.store.set(self._key(user_id, day), {"locked": True, "trigger": trigger})
        logger.info(
            "Locked adjustments for user %s on %s after %s",
            user_id,
            calendar_day(day).isoformat(),
            trigger,
        )
        return AdjustmentResult(ok=True, value=value)
