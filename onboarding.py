from __future__ import annotations

from pydantic import ValidationError

from errors import ProfileValidationError
from metabolic_model import partition_goals
from records import OnboardingForm, UserProfile

TOTAL_STEPS = 5

DIETARY_OPTIONS = {
    "Vegetarian": "Plant-based + dairy (No Meat)",
    "Egg-atarian": "Vegetarian + Eggs",
    "Standard": "No specific restrictions",
    "High Protein": "Lean meats and dairy focus",
    "Pescatarian": "Plant-based + Seafood",
    "No Onion/Garlic": "Vegetarian excluding aromatics",
    "Jain": "No root vegetables or eggs",
    "High-Fiber": "Seeds, nuts, and complex carb focus",
    "Keto": "High fat, very low carb focus",
}


def feet_inches_to_cm(feet: float, inches: float) -> int:
    return round(feet * 30.48 + inches * 2.54)


def is_step_valid(step: int, form: OnboardingForm) -> bool:
    """Whether the questionnaire may advance past `step` (1-based)."""
    if step == 1:
        return form.age > 0 and form.weight > 0 and form.height > 0 and form.gender is not None
    if step == 2:
        return (
            form.occupation is not None
            and form.commute_style is not None
            and form.activity_level is not None
            and form.screen_time > 0
        )
    if step == 3:
        return form.sleep_hours > 0 and form.habits is not None and form.equipment is not None
    if step == 4:
        return len(form.dietary_patterns) > 0
    if step == 5:
        clinical, performance = partition_goals(form.medical_goals)
        return bool(clinical) and bool(performance)
    return False


def is_complete(form: OnboardingForm) -> bool:
    return all(is_step_valid(step, form) for step in range(1, TOTAL_STEPS + 1))


def first_invalid_step(form: OnboardingForm) -> int | None:
    for step in range(1, TOTAL_STEPS + 1):
        if not is_step_valid(step, form):
            return step
    return None


def build_profile(form: OnboardingForm) -> UserProfile:
    """Turn a completed questionnaire into a profile with energy targets."""
    step = first_invalid_step(form)
    if step is not None:
        raise ProfileValidationError(f"Onboarding step {step} is incomplete")
    try:
        return UserProfile.create(**form.model_dump())
    except ValidationError as exc:
        raise ProfileValidationError(str(exc)) from exc
