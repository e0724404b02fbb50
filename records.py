from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

import metabolic_model


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityLevel(str, Enum):
    SEDENTARY = "SEDENTARY"
    LIGHTLY_ACTIVE = "LIGHTLY_ACTIVE"
    MODERATELY_ACTIVE = "MODERATELY_ACTIVE"
    VERY_ACTIVE = "VERY_ACTIVE"
    ATHLETE = "ATHLETE"


class Occupation(str, Enum):
    SITTING = "sitting"
    STANDING = "standing"
    HEAVY_LIFTING = "heavy_lifting"


class CommuteStyle(str, Enum):
    ACTIVE = "active"
    PASSIVE = "passive"


class SleepQuality(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class Habits(str, Enum):
    NONE = "none"
    OCCASIONAL = "occasional"
    FREQUENT = "frequent"


class Equipment(str, Enum):
    FULL_GYM = "FULL_GYM"
    DUMBBELLS = "DUMBBELLS"
    BODYWEIGHT = "BODYWEIGHT"


class Intensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Record(BaseModel):
    """Shared config: snake_case in Python, camelCase accepted from AI payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class Macros(Record):
    protein: float
    carbs: float
    fats: float


class UserProfile(Record):
    age: int = Field(gt=0)
    gender: Gender
    weight: float = Field(gt=0)
    height: float = Field(gt=0)
    body_fat: Optional[float] = None
    activity_level: ActivityLevel
    occupation: Occupation
    commute_style: CommuteStyle
    screen_time: float = Field(ge=0)
    sleep_hours: float = Field(ge=0)
    sleep_quality: SleepQuality = SleepQuality.GOOD
    stress_level: int = Field(ge=1, le=10)
    habits: Habits
    dietary_patterns: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    medical_goals: List[str] = Field(default_factory=list)
    equipment: Equipment
    base_tdee: float = 0.0
    tdee: float = 0.0
    macros: Macros = Field(default_factory=lambda: Macros(protein=0, carbs=0, fats=0))

    @classmethod
    def create(cls, **fields: Any) -> "UserProfile":
        """Build a profile and fill in its derived energy targets."""
        return cls(**fields).recomputed()

    def recomputed(self) -> "UserProfile":
        targets = metabolic_model.compute_targets(self)
        return self.model_copy(
            update={
                "base_tdee": targets["base_tdee"],
                "tdee": targets["tdee"],
                "macros": Macros(**targets["macros"]),
            }
        )

    def with_changes(self, **fields: Any) -> "UserProfile":
        data = self.model_dump()
        data.update(fields)
        return UserProfile.model_validate(data).recomputed()


class OnboardingForm(Record):
    """Partially filled questionnaire; every field may still be missing."""

    age: int = 0
    gender: Optional[Gender] = None
    weight: float = 0
    height: float = 0
    activity_level: Optional[ActivityLevel] = None
    occupation: Optional[Occupation] = None
    commute_style: Optional[CommuteStyle] = None
    screen_time: float = 0
    sleep_hours: float = 0
    sleep_quality: SleepQuality = SleepQuality.GOOD
    stress_level: int = 5
    habits: Optional[Habits] = None
    dietary_patterns: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    medical_goals: List[str] = Field(default_factory=list)
    equipment: Optional[Equipment] = None


class MealSuggestion(Record):
    name: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fats: float = Field(ge=0)
    health_score: float = Field(ge=1, le=10)
    type: str
    sodium: Optional[float] = None
    potassium: Optional[float] = None
    fiber: Optional[float] = None


class MealAnalysis(MealSuggestion):
    sodium: float = Field(ge=0)
    potassium: float = Field(ge=0)


class MealEntry(Record):
    id: str = Field(default_factory=new_id)
    name: str
    timestamp: int
    calories: float
    protein: float
    carbs: float
    fats: float
    sodium: float = 0
    potassium: float = 0
    fiber: float = 0
    health_score: float = Field(ge=1, le=10)
    type: str
    day_name: str
    is_suggested: bool = False

    @classmethod
    def from_suggestion(
        cls,
        meal: MealSuggestion,
        timestamp: int,
        day_name: str,
        is_suggested: bool,
    ) -> "MealEntry":
        data = meal.model_dump()
        for key in ("sodium", "potassium", "fiber"):
            if data.get(key) is None:
                data[key] = 0
        return cls(timestamp=timestamp, day_name=day_name, is_suggested=is_suggested, **data)


class WorkoutExercise(Record):
    name: str = Field(min_length=1)
    sets: int = Field(ge=0)
    reps: int = Field(ge=0)
    description: str = ""
    notes: Optional[str] = None
    completed: bool = False


class WorkoutDraft(Record):
    """Workout payload as the collaborator returns it, before ids are assigned."""

    exercises: List[WorkoutExercise] = Field(min_length=1)
    intensity: Intensity
    rationale: str = Field(min_length=1)
    analysis: Optional[str] = None

    @field_validator("intensity", mode="before")
    @classmethod
    def _normalize_intensity(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return {"moderate": "medium", "mid": "medium"}.get(lowered, lowered)
        return value

    def to_plan(self, day_name: str, plan_date: Optional[str] = None) -> "WorkoutPlan":
        return WorkoutPlan(day_name=day_name, date=plan_date, **self.model_dump())


class WorkoutPlan(WorkoutDraft):
    id: str = Field(default_factory=new_id)
    day_name: str = ""
    date: Optional[str] = None

    @computed_field
    @property
    def completed(self) -> bool:
        return all(exercise.completed for exercise in self.exercises)


class GroceryItem(Record):
    name: str
    amount: str


class GroceryCategory(Record):
    category: str
    items: List[GroceryItem]


class UserAccount(Record):
    id: str = Field(default_factory=new_id)
    email: str
    password_hash: str
    profile: Optional[UserProfile] = None


WeeklyMealPlan = Dict[str, List[MealSuggestion]]
WeeklyWorkoutPlan = Dict[str, WorkoutPlan]
GroceryList = List[GroceryCategory]
