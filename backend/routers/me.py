from __future__ import annotations

import base64
import binascii
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response, status

import daily_planner
from adjustment_gate import LOCKED, AdjustmentResult
from protocol_core import NO_PLAN, NOTHING_MISSED, ProtocolService
from records import (
    GroceryCategory,
    MealEntry,
    MealSuggestion,
    OnboardingForm,
    UserAccount,
    UserProfile,
    WorkoutPlan,
)

from .. import schemas
from ..auth import get_current_user, get_service

router = APIRouter(prefix="/me", tags=["me"])

_REFUSALS = {
    LOCKED: (status.HTTP_409_CONFLICT, "locked"),
    NO_PLAN: (status.HTTP_404_NOT_FOUND, "No workout plan for this week."),
    NOTHING_MISSED: (status.HTTP_400_BAD_REQUEST, "No missed days to recalibrate."),
}


def _adjustment_response(result: AdjustmentResult) -> schemas.AdjustmentOut:
    if not result.ok:
        code, detail = _REFUSALS.get(result.reason, (status.HTTP_400_BAD_REQUEST, result.reason))
        raise HTTPException(status_code=code, detail=detail)
    return schemas.AdjustmentOut(ok=True, plan=result.value)


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("", response_model=schemas.UserOut)
def get_me(user: UserAccount = Depends(get_current_user)):
    return schemas.UserOut(id=user.id, email=user.email, has_profile=user.profile is not None)


@router.get("/profile", response_model=UserProfile)
def get_profile(user: UserAccount = Depends(get_current_user)):
    if user.profile is None:
        raise _not_found("Onboarding has not been completed.")
    return user.profile


@router.put("/profile", response_model=UserProfile)
def put_profile(
    form: OnboardingForm,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    if user.profile is None:
        return service.complete_onboarding(user.id, form)
    return service.update_profile(user.id, form)


# ---------- meals ----------


@router.get("/meal-plan", response_model=Dict[str, List[MealSuggestion]])
def get_meal_plan(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    plan = service.meal_plan(user.id)
    if plan is None:
        raise _not_found("No meal plan for this week.")
    return plan


@router.post("/meal-plan", response_model=Dict[str, List[MealSuggestion]])
def generate_meal_plan(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return service.generate_meal_plan(user.id)


@router.post("/meal-plan/{day}/{index}/swap", response_model=Dict[str, List[MealSuggestion]])
def swap_meal(
    day: str,
    index: int,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    try:
        return service.swap_meal(user.id, day, index)
    except IndexError:
        raise _not_found(f"No meal #{index} on {day}.")


@router.post(
    "/meal-plan/{day}/{index}/accept",
    response_model=MealEntry,
    status_code=status.HTTP_201_CREATED,
)
def accept_meal(
    day: str,
    index: int,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    try:
        return service.accept_meal(user.id, day, index)
    except IndexError:
        raise _not_found(f"No meal #{index} on {day}.")


@router.get("/grocery-list", response_model=List[GroceryCategory])
def get_grocery_list(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return service.grocery_list(user.id)


@router.get("/meals", response_model=List[MealEntry])
def list_meals(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return service.journal.meals(user.id)


@router.post("/meals", response_model=MealEntry, status_code=status.HTTP_201_CREATED)
def log_meal(
    payload: schemas.MealTextIn,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return service.log_meal_text(user.id, payload.text)


@router.post("/meals/image", response_model=MealEntry, status_code=status.HTTP_201_CREATED)
def log_meal_image(
    payload: schemas.MealImageIn,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    try:
        image = base64.b64decode(payload.image, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image is not valid base64.")
    return service.log_meal_image(user.id, image, payload.mime_type)


@router.delete("/meals/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_meal(
    entry_id: str,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    if not service.remove_meal(user.id, entry_id):
        raise _not_found("Meal not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- workouts ----------


@router.get("/workout-plan", response_model=Dict[str, WorkoutPlan])
def get_workout_plan(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    plan = service.workout_plan(user.id)
    if plan is None:
        raise _not_found("No workout plan for this week.")
    return plan


@router.post("/workout-plan", response_model=Dict[str, WorkoutPlan])
def generate_workout_plan(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return service.generate_workout_plan(user.id)


@router.post("/workout-plan/{day}/exercises/{index}/toggle", response_model=WorkoutPlan)
def toggle_exercise(
    day: str,
    index: int,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    try:
        return service.toggle_exercise(user.id, day, index)
    except IndexError:
        raise _not_found(f"No exercise #{index} on {day}.")


@router.get("/adjustments", response_model=schemas.AdjustmentStatus)
def get_adjustment_status(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    info = service.gate.lock_info(user.id, service.clock()) or {}
    return schemas.AdjustmentStatus(
        locked=bool(info.get("locked")),
        trigger=info.get("trigger"),
        missed_days=service.missed_days(user.id),
    )


@router.post("/adjustments/fatigue", response_model=schemas.AdjustmentOut)
def adjust_for_fatigue(
    payload: schemas.FatigueIn,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return _adjustment_response(service.adjust_for_fatigue(user.id, payload.level))


@router.post("/adjustments/targeted", response_model=schemas.AdjustmentOut)
def generate_targeted_workout(
    payload: schemas.TargetedWorkoutIn,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    try:
        result = service.generate_targeted_workout(user.id, payload.split, payload.muscles)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _adjustment_response(result)


@router.post("/adjustments/recalibrate", response_model=schemas.AdjustmentOut)
def recalibrate(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return _adjustment_response(service.recalibrate(user.id))


# ---------- overview ----------


@router.get("/daily-plan")
def get_daily_plan(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return daily_planner.get_daily_plan(service, user.id)


@router.get("/history", response_model=List[schemas.IntakeDay])
def get_intake_history(
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return daily_planner.history_records(service.journal.meals(user.id))


@router.post("/coach", response_model=schemas.ChatOut)
def coach_chat(
    payload: schemas.ChatIn,
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    return schemas.ChatOut(reply=service.coach_chat(user.id, payload.message))
