from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from accounts import AccountRegistry
from adjustment_gate import (
    FATIGUE,
    RECALIBRATION,
    TARGETED,
    AdjustmentResult,
    DailyAdjustmentGate,
)
from errors import PlanNotFoundError, ProfileValidationError, TemporalLockError
from journal import Journal
from kv_store import KeyValueStore
from onboarding import build_profile
from plan_store import PlanKind, PlanStore
from recalibration import find_missed_days, recalibrate
from records import (
    GroceryList,
    MealEntry,
    OnboardingForm,
    UserAccount,
    UserProfile,
    WeeklyMealPlan,
    WeeklyWorkoutPlan,
    WorkoutPlan,
)
from week_clock import day_name, normalize_day_name

logger = logging.getLogger(__name__)

NO_PLAN = "no_plan"
NOTHING_MISSED = "nothing_missed"

WORKOUT_SPLITS: Dict[str, Dict[str, str]] = {
    "upper_push": {
        "label": "Upper Body Push",
        "sub": "Lateral Deltoid, Triceps, Chest, Front Shoulders",
    },
    "upper_pull": {
        "label": "Upper Body Pull",
        "sub": "Biceps, Traps (mid-back), Lats, Rear Shoulders",
    },
    "lower_push": {"label": "Lower Body Push", "sub": "Calves, Glutes, Quads"},
    "lower_pull": {"label": "Lower Body Pull", "sub": "Calves, Glutes, Hamstrings"},
    "core": {"label": "Core", "sub": "Lower back, Abdominals, Obliques"},
    "arms": {"label": "Arms", "sub": "Biceps, Triceps"},
    "shoulders": {"label": "Shoulders", "sub": "Front Shoulders, Rear Shoulders"},
    "full_body": {
        "label": "Full Body",
        "sub": "Glutes, Hamstrings, Lats, Quads, Chest, Front Shoulders, Rear Shoulders",
    },
}

MUSCLE_REGIONS: Dict[str, str] = {
    "chest": "CHEST",
    "abs": "ABDOMINALS",
    "shoulders": "SHOULDERS",
    "biceps": "BICEPS",
    "triceps": "TRICEPS",
    "quads": "QUADS",
    "traps": "TRAPS",
    "lats": "LATS",
    "glutes": "GLUTES",
    "hamstrings": "HAMSTRINGS",
    "calves": "CALVES",
    "lower_back": "LOWER BACK",
}


def targeted_label(split: Optional[str], muscles: List[str]) -> str:
    """Target description for a specialized workout; a muscle selection overrides the split."""
    if muscles:
        unknown = [m for m in muscles if m not in MUSCLE_REGIONS]
        if unknown:
            raise ValueError(f"Unknown muscle region(s): {', '.join(unknown)}")
        return f"Muscle Specific: {', '.join(muscles)}"
    if split:
        if split not in WORKOUT_SPLITS:
            raise ValueError(f"Unknown workout split '{split}'")
        return WORKOUT_SPLITS[split]["label"]
    raise ValueError("Choose a split or at least one muscle region")


class ProtocolService:
    """
    Per-user protocol operations: onboarding, weekly plans, same-day adjustments,
    the journal and coaching chat.

    Everything that edits "today" checks the requested weekday against the clock and
    raises TemporalLockError for any other day.
    """

    def __init__(
        self,
        store: KeyValueStore,
        coach: Any,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.coach = coach
        self.clock = clock
        self.accounts = AccountRegistry(store)
        self.plans = PlanStore(store, clock)
        self.gate = DailyAdjustmentGate(store)
        self.journal = Journal(store)

    # ---------- helpers ----------

    def today(self) -> str:
        return day_name(self.clock())

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def _require_today(self, requested_day: str) -> str:
        day = normalize_day_name(requested_day)
        if day != self.today():
            raise TemporalLockError(f"{day} is read-only; only {self.today()} can be changed")
        return day

    @staticmethod
    def _pick(items: List[Any], index: int) -> Any:
        # Negative positions would silently address the end of the list.
        if index < 0:
            raise IndexError(f"Position {index} is out of range")
        return items[index]

    def _account(self, user_id: str) -> UserAccount:
        account = self.accounts.get(user_id)
        if account is None:
            raise KeyError(f"Unknown account '{user_id}'")
        return account

    def profile(self, user_id: str) -> UserProfile:
        account = self._account(user_id)
        if account.profile is None:
            raise ProfileValidationError("Onboarding has not been completed")
        return account.profile

    # ---------- profile ----------

    def complete_onboarding(self, user_id: str, form: OnboardingForm) -> UserProfile:
        """
        Compute targets and build the first week of plans.

        Both plans are generated before anything is written, so a collaborator
        failure leaves the account exactly as it was.
        """
        self._account(user_id)
        profile = build_profile(form)
        meal_plan = self.coach.generate_weekly_meal_plan(profile)
        workout_plan = self.coach.generate_weekly_workout_plan(profile)

        self.plans.save(user_id, PlanKind.MEAL, meal_plan)
        self.plans.discard(user_id, PlanKind.GROCERY)
        self.plans.save(user_id, PlanKind.WORKOUT, workout_plan)
        self.accounts.attach_profile(user_id, profile)
        logger.info("Onboarded user %s (target %.0f kcal)", user_id, profile.tdee)
        return profile

    def update_profile(self, user_id: str, form: OnboardingForm) -> UserProfile:
        self.profile(user_id)
        return self.complete_onboarding(user_id, form)

    # ---------- meals ----------

    def meal_plan(self, user_id: str) -> Optional[WeeklyMealPlan]:
        return self.plans.load(user_id, PlanKind.MEAL)

    def generate_meal_plan(self, user_id: str) -> WeeklyMealPlan:
        plan = self.coach.generate_weekly_meal_plan(self.profile(user_id))
        self.plans.save(user_id, PlanKind.MEAL, plan)
        self.plans.discard(user_id, PlanKind.GROCERY)
        return plan

    def swap_meal(self, user_id: str, requested_day: str, index: int) -> WeeklyMealPlan:
        day = self._require_today(requested_day)
        plan = self.meal_plan(user_id)
        if not plan or not plan.get(day):
            raise PlanNotFoundError(f"No meal plan for {day}")
        meals = list(plan[day])
        current = self._pick(meals, index)
        meals[index] = self.coach.generate_meal_alternative(
            self.profile(user_id), current.type, current.name
        )
        return self.plans.replace_day(user_id, PlanKind.MEAL, day, meals)

    def accept_meal(self, user_id: str, requested_day: str, index: int) -> MealEntry:
        day = self._require_today(requested_day)
        plan = self.meal_plan(user_id)
        if not plan or not plan.get(day):
            raise PlanNotFoundError(f"No meal plan for {day}")
        entry = MealEntry.from_suggestion(
            self._pick(plan[day], index), timestamp=self._now_ms(), day_name=day, is_suggested=True
        )
        return self.journal.add_meal(user_id, entry)

    def log_meal_text(self, user_id: str, text: str) -> MealEntry:
        if not text.strip():
            raise ValueError("Describe the meal first")
        analysis = self.coach.analyze_meal_text(text, self.profile(user_id))
        entry = MealEntry.from_suggestion(
            analysis, timestamp=self._now_ms(), day_name=self.today(), is_suggested=False
        )
        return self.journal.add_meal(user_id, entry)

    def log_meal_image(self, user_id: str, image: bytes, mime_type: str = "image/jpeg") -> MealEntry:
        analysis = self.coach.analyze_meal_image(image, self.profile(user_id), mime_type)
        entry = MealEntry.from_suggestion(
            analysis, timestamp=self._now_ms(), day_name=self.today(), is_suggested=False
        )
        return self.journal.add_meal(user_id, entry)

    def remove_meal(self, user_id: str, entry_id: str) -> bool:
        for entry in self.journal.meals(user_id):
            if entry.id == entry_id:
                self._require_today(entry.day_name)
                return self.journal.remove_meal(user_id, entry_id)
        return False

    def grocery_list(self, user_id: str) -> GroceryList:
        cached = self.plans.load(user_id, PlanKind.GROCERY)
        if cached is not None:
            return cached
        meal_plan = self.meal_plan(user_id)
        if not meal_plan:
            raise PlanNotFoundError("Generate a meal plan before extracting a grocery list")
        groceries = self.coach.generate_grocery_list(meal_plan)
        self.plans.save(user_id, PlanKind.GROCERY, groceries)
        return groceries

    # ---------- workouts ----------

    def workout_plan(self, user_id: str) -> Optional[WeeklyWorkoutPlan]:
        return self.plans.load(user_id, PlanKind.WORKOUT)

    def generate_workout_plan(self, user_id: str) -> WeeklyWorkoutPlan:
        plan = self.coach.generate_weekly_workout_plan(self.profile(user_id))
        self.plans.save(user_id, PlanKind.WORKOUT, plan)
        return plan

    def _replace_today(self, user_id: str, workout: WorkoutPlan) -> WeeklyWorkoutPlan:
        today = self.today()
        workout = workout.model_copy(
            update={"day_name": today, "date": self.clock().isoformat()}
        )
        return self.plans.replace_day(user_id, PlanKind.WORKOUT, today, workout)

    def adjust_for_fatigue(self, user_id: str, fatigue_level: int) -> AdjustmentResult:
        if not 1 <= fatigue_level <= 10:
            raise ValueError("Fatigue level must be between 1 and 10")
        if self.workout_plan(user_id) is None:
            return AdjustmentResult(ok=False, reason=NO_PLAN)
        profile = self.profile(user_id)

        def mutation() -> WeeklyWorkoutPlan:
            workout = self.coach.generate_daily_workout(
                profile, fatigue_level, self.today(), "Dynamic fatigue adjust"
            )
            return self._replace_today(user_id, workout)

        return self.gate.try_adjust(user_id, self.clock(), mutation, FATIGUE)

    def generate_targeted_workout(
        self,
        user_id: str,
        split: Optional[str] = None,
        muscles: Optional[List[str]] = None,
    ) -> AdjustmentResult:
        muscles = list(muscles or [])
        target = targeted_label(split, muscles)
        if self.workout_plan(user_id) is None:
            return AdjustmentResult(ok=False, reason=NO_PLAN)
        profile = self.profile(user_id)

        def mutation() -> WeeklyWorkoutPlan:
            workout = self.coach.generate_specialized_workout(
                profile, target, muscles, self.today()
            )
            return self._replace_today(user_id, workout)

        return self.gate.try_adjust(user_id, self.clock(), mutation, TARGETED)

    def missed_days(self, user_id: str) -> List[str]:
        return find_missed_days(
            self.workout_plan(user_id),
            self.today(),
            self.journal.completed_workout_ids(user_id),
        )

    def recalibrate(self, user_id: str) -> AdjustmentResult:
        plan = self.workout_plan(user_id)
        if plan is None:
            return AdjustmentResult(ok=False, reason=NO_PLAN)
        missed = self.missed_days(user_id)
        if not missed:
            return AdjustmentResult(ok=False, reason=NOTHING_MISSED)
        profile = self.profile(user_id)

        def mutation() -> WeeklyWorkoutPlan:
            updated = recalibrate(profile, plan, missed, self.today(), self.coach)
            self.plans.replace(user_id, PlanKind.WORKOUT, updated)
            logger.info("Recalibrated week for user %s after missing %s", user_id, ", ".join(missed))
            return updated

        return self.gate.try_adjust(user_id, self.clock(), mutation, RECALIBRATION)

    def toggle_exercise(self, user_id: str, requested_day: str, index: int) -> WorkoutPlan:
        day = self._require_today(requested_day)
        plan = self.workout_plan(user_id)
        if not plan or day not in plan:
            raise PlanNotFoundError(f"No workout planned for {day}")
        workout = plan[day]
        exercises = list(workout.exercises)
        exercise = self._pick(exercises, index)
        exercises[index] = exercise.model_copy(update={"completed": not exercise.completed})
        workout = workout.model_copy(update={"exercises": exercises})
        self.plans.replace_day(user_id, PlanKind.WORKOUT, day, workout)
        if workout.completed:
            self.journal.record_completed_workout(user_id, workout)
        return workout

    # ---------- coach ----------

    def today_meals(self, user_id: str) -> List[MealEntry]:
        today = self.clock().date()
        return [
            meal
            for meal in self.journal.meals(user_id)
            if datetime.fromtimestamp(meal.timestamp / 1000).date() == today
        ]

    def coach_chat(self, user_id: str, message: str) -> str:
        if not message.strip():
            raise ValueError("Message is empty")
        meals = self.today_meals(user_id)
        stats = {
            "caloriesToday": round(sum(meal.calories for meal in meals)),
            "mealsToday": [meal.name for meal in meals],
            "workoutsCompleted": len(self.journal.workouts(user_id)),
        }
        return self.coach.coaching_advice(self.profile(user_id), stats, message)
