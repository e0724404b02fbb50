from __future__ import annotations

import logging
from typing import List

from kv_store import KeyValueStore
from records import MealEntry, WorkoutPlan

logger = logging.getLogger(__name__)


class Journal:
    """
    Confirmed meals and completed workouts for one store.

    The journal accepts writes for any day; "today only" rules belong to callers.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _meals_key(user_id: str):
        return ("journal", user_id, "meals")

    @staticmethod
    def _workouts_key(user_id: str):
        return ("journal", user_id, "workouts")

    def meals(self, user_id: str) -> List[MealEntry]:
        raw = self.store.get(self._meals_key(user_id), default=[]) or []
        return [MealEntry.model_validate(item) for item in raw]

    def add_meal(self, user_id: str, entry: MealEntry) -> MealEntry:
        raw = self.store.get(self._meals_key(user_id), default=[]) or []
        # Newest first.
        raw.insert(0, entry.model_dump(mode="json"))
        self.store.set(self._meals_key(user_id), raw)
        return entry

    def remove_meal(self, user_id: str, entry_id: str) -> bool:
        raw = self.store.get(self._meals_key(user_id), default=[]) or []
        kept = [item for item in raw if item.get("id") != entry_id]
        if len(kept) == len(raw):
            return False
        self.store.set(self._meals_key(user_id), kept)
        return True

    def workouts(self, user_id: str) -> List[WorkoutPlan]:
        raw = self.store.get(self._workouts_key(user_id), default=[]) or []
        return [WorkoutPlan.model_validate(item) for item in raw]

    def completed_workout_ids(self, user_id: str) -> List[str]:
        return [w.id for w in self.workouts(user_id) if w.completed]

    def record_completed_workout(self, user_id: str, plan: WorkoutPlan) -> bool:
        """
        Promote a fully completed day plan into the journal.

        Returns False (and writes nothing) if the plan is not complete or its id is
        already journaled, so repeated toggles never duplicate the record.
        """
        if not plan.completed:
            return False
        raw = self.store.get(self._workouts_key(user_id), default=[]) or []
        if any(item.get("id") == plan.id for item in raw):
            return False
        raw.insert(0, plan.model_dump(mode="json"))
        self.store.set(self._workouts_key(user_id), raw)
        logger.info("Journaled completed workout %s (%s) for user %s", plan.id, plan.day_name, user_id)
        return True
