from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter

from errors import PlanNotFoundError
from kv_store import KeyValueStore
from records import GroceryCategory, MealSuggestion, WorkoutPlan
from week_clock import normalize_day_name, week_start

logger = logging.getLogger(__name__)


class PlanKind(str, Enum):
    MEAL = "meal"
    WORKOUT = "workout"
    GROCERY = "grocery"


_PLAN_ADAPTERS: Dict[PlanKind, TypeAdapter] = {
    PlanKind.MEAL: TypeAdapter(Dict[str, List[MealSuggestion]]),
    PlanKind.WORKOUT: TypeAdapter(Dict[str, WorkoutPlan]),
    PlanKind.GROCERY: TypeAdapter(List[GroceryCategory]),
}


class PlanStore:
    """
    Weekly plans keyed by (user, kind) and tagged with the week-start that produced them.

    A plan whose tag differs from week_start(now) is never served: load() treats it
    as absent so the caller regenerates it.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    @staticmethod
    def _key(user_id: str, kind: PlanKind):
        return ("plan", user_id, PlanKind(kind).value)

    def _current_record(self, user_id: str, kind: PlanKind) -> Optional[Dict[str, Any]]:
        record = self.store.get(self._key(user_id, kind))
        if not isinstance(record, dict) or "week_start" not in record:
            return None
        if record["week_start"] != week_start(self.clock()):
            return None
        return record

    def load(self, user_id: str, kind: PlanKind) -> Optional[Any]:
        record = self._current_record(user_id, kind)
        if record is None:
            return None
        return _PLAN_ADAPTERS[PlanKind(kind)].validate_python(record["body"])

    def week_tag(self, user_id: str, kind: PlanKind) -> Optional[int]:
        record = self.store.get(self._key(user_id, kind))
        if isinstance(record, dict):
            return record.get("week_start")
        return None

    def save(self, user_id: str, kind: PlanKind, plan: Any) -> int:
        tag = week_start(self.clock())
        self._write(user_id, kind, plan, tag)
        logger.info("Saved %s plan for user %s (week %s)", PlanKind(kind).value, user_id, tag)
        return tag

    def replace(self, user_id: str, kind: PlanKind, plan: Any) -> None:
        """Swap the whole body of the current plan, keeping its week tag."""
        record = self._current_record(user_id, kind)
        if record is None:
            raise PlanNotFoundError(f"No current {PlanKind(kind).value} plan for user {user_id}")
        self._write(user_id, kind, plan, record["week_start"])

    def replace_day(self, user_id: str, kind: PlanKind, day_name: str, content: Any) -> Any:
        """Swap exactly one weekday's content without touching the week tag."""
        kind = PlanKind(kind)
        if kind is PlanKind.GROCERY:
            raise ValueError("Grocery lists are not keyed by weekday")
        plan = self.load(user_id, kind)
        if plan is None:
            raise PlanNotFoundError(f"No current {kind.value} plan for user {user_id}")
        plan[normalize_day_name(day_name)] = content
        self.replace(user_id, kind, plan)
        return plan

    def discard(self, user_id: str, kind: PlanKind) -> None:
        self.store.delete(self._key(user_id, kind))

    def _write(self, user_id: str, kind: PlanKind, plan: Any, tag: int) -> None:
        body = _PLAN_ADAPTERS[PlanKind(kind)].dump_python(plan, mode="json")
        self.store.set(self._key(user_id, kind), {"week_start": tag, "body": body})
