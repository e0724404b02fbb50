import os
from datetime import datetime

import pytest

# Keep the backend module from creating a database file on import.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from errors import CollaboratorError  # noqa: E402
from kv_store import MemoryStore  # noqa: E402
from protocol_core import ProtocolService  # noqa: E402
from records import (  # noqa: E402
    GroceryCategory,
    GroceryItem,
    MealAnalysis,
    MealSuggestion,
    OnboardingForm,
    UserProfile,
    WorkoutExercise,
    WorkoutPlan,
)
from week_clock import DAYS  # noqa: E402

# Wednesday of the week starting Monday 2024-01-01.
WEDNESDAY = datetime(2024, 1, 3, 9, 30)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_workout(day: str, intensity: str = "medium", rationale: str = "Base week") -> WorkoutPlan:
    return WorkoutPlan(
        day_name=day,
        intensity=intensity,
        rationale=rationale,
        exercises=[
            WorkoutExercise(name="Goblet squat", sets=3, reps=10, description="Sit down. Stand up."),
            WorkoutExercise(name="Push-up", sets=3, reps=12, description="Lower down. Press up."),
        ],
    )


def make_meal(name: str, meal_type: str = "Lunch", calories: float = 500) -> MealSuggestion:
    return MealSuggestion(
        name=name,
        calories=calories,
        protein=35,
        carbs=50,
        fats=15,
        health_score=8,
        type=meal_type,
    )


class FakeCoach:
    """In-memory stand-in for CoachClient. Names listed in `fail` raise CollaboratorError."""

    def __init__(self):
        self.calls = []
        self.fail = set()
        self.last_request = None

    def _record(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise CollaboratorError(f"{name} failed")

    def generate_weekly_meal_plan(self, profile):
        self._record("generate_weekly_meal_plan")
        return {
            day: [make_meal(f"{day} oats", "Breakfast", 400), make_meal(f"{day} bowl")]
            for day in DAYS
        }

    def generate_weekly_workout_plan(self, profile):
        self._record("generate_weekly_workout_plan")
        return {day: make_workout(day) for day in DAYS}

    def generate_daily_workout(self, profile, fatigue_level, day_name, history_notes=""):
        self._record("generate_daily_workout")
        return make_workout(day_name, "low", f"Fatigue {fatigue_level}")

    def generate_specialized_workout(self, profile, target, muscles, day_name):
        self._record("generate_specialized_workout")
        return make_workout(day_name, "high", f"Target: {target}")

    def recalibrate_plan(self, request):
        self._record("recalibrate_plan")
        self.last_request = request
        return {day: make_workout(day, rationale="Recalibrated") for day in DAYS}

    def generate_meal_alternative(self, profile, meal_type, current_meal):
        self._record("generate_meal_alternative")
        return make_meal(f"Alternative to {current_meal}", meal_type, 450)

    def generate_grocery_list(self, meal_plan):
        self._record("generate_grocery_list")
        return [GroceryCategory(category="Grains", items=[GroceryItem(name="Oats", amount="1 kg")])]

    def analyze_meal_text(self, text, profile):
        self._record("analyze_meal_text")
        return MealAnalysis(
            name=text.title(),
            calories=650,
            protein=40,
            carbs=70,
            fats=20,
            sodium=900,
            potassium=600,
            fiber=6,
            health_score=7,
            type="Dinner",
        )

    def analyze_meal_image(self, image, profile, mime_type="image/jpeg"):
        self._record("analyze_meal_image")
        return self.analyze_meal_text("photo meal", profile)

    def coaching_advice(self, profile, daily_stats, message):
        self._record("coaching_advice")
        self.last_request = daily_stats
        return "Take the stairs on your commute."


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FixedClock(WEDNESDAY)


@pytest.fixture
def coach():
    return FakeCoach()


@pytest.fixture
def onboarding_form():
    return OnboardingForm(
        age=30,
        gender="male",
        weight=70,
        height=175,
        activity_level="MODERATELY_ACTIVE",
        occupation="sitting",
        commute_style="passive",
        screen_time=5,
        sleep_hours=7,
        stress_level=4,
        habits="none",
        dietary_patterns=["Standard"],
        medical_goals=["Weight Loss", "Flexibility & Mobility"],
        equipment="FULL_GYM",
    )


@pytest.fixture
def profile(onboarding_form):
    return UserProfile.create(**onboarding_form.model_dump())


@pytest.fixture
def service(store, coach, clock):
    return ProtocolService(store, coach, clock)


@pytest.fixture
def onboarded(service, onboarding_form):
    """Account id of a user who finished onboarding on WEDNESDAY."""
    account = service.accounts.sign_up("ada@example.com", "s3cret")
    service.complete_onboarding(account.id, onboarding_form)
    return account.id
