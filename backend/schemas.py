from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from records import Record, WorkoutPlan


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(Record):
    id: str
    email: EmailStr
    has_profile: bool = False


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class FatigueIn(BaseModel):
    level: int = Field(ge=1, le=10)


class TargetedWorkoutIn(BaseModel):
    split: Optional[str] = None
    muscles: List[str] = Field(default_factory=list)


class MealTextIn(BaseModel):
    text: str = Field(min_length=1)


class MealImageIn(Record):
    image: str
    mime_type: str = "image/jpeg"


class AdjustmentOut(Record):
    ok: bool
    reason: Optional[str] = None
    plan: Optional[Dict[str, WorkoutPlan]] = None


class AdjustmentStatus(Record):
    locked: bool
    trigger: Optional[str] = None
    missed_days: List[str] = Field(default_factory=list)


class ChatIn(BaseModel):
    message: str = Field(min_length=1)


class ChatOut(BaseModel):
    reply: str


class IntakeDay(BaseModel):
    date: str
    calories: float
    protein: float
    carbs: float
    fats: float
    fiber: float
    sodium: float
    potassium: float
