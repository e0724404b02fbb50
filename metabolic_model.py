from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

ACTIVITY_LEVEL_MULTIPLIERS: Dict[str, float] = {
    "SEDENTARY": 1.2,
    "LIGHTLY_ACTIVE": 1.375,
    "MODERATELY_ACTIVE": 1.55,
    "VERY_ACTIVE": 1.725,
    "ATHLETE": 1.9,
}

# Mifflin-St Jeor sex constants. "other" sits halfway between the two.
GENDER_OFFSETS: Dict[str, float] = {
    "male": 5.0,
    "female": -161.0,
    "other": -78.0,
}

CLINICAL_TARGETS: List[str] = [
    "Weight Loss",
    "Weight Gain",
    "PCOS/Hormonal Balance",
    "Gut Health (Probiotics)",
    "Heart Health (Low Na/Sat Fat)",
    "Diabetic Friendly",
]
PERFORMANCE_TARGETS: List[str] = [
    "Body Recomposition",
    "Endurance Training (5k/Marathon)",
    "Flexibility & Mobility",
    "Build Muscle",
]
RELIGIOUS_ETHICAL: List[str] = ["Halal", "Kosher", "Sattvic"]
HEALTH_CLARITY: List[str] = ["Mental Clarity (Omega-3)", "Longevity Focus"]
SENSITIVITY: List[str] = [
    "Nut-free",
    "Soy-free",
    "Dairy-free",
    "Shellfish-free",
    "FODMAP Friendly",
]

GOAL_CATEGORIES: Dict[str, List[str]] = {
    "Clinical targets": CLINICAL_TARGETS,
    "Performance targets": PERFORMANCE_TARGETS,
    "Religious / ethical": RELIGIOUS_ETHICAL,
    "Health & clarity": HEALTH_CLARITY,
    "Sensitivity / allergens": SENSITIVITY,
}

DEFICIT_FACTOR = 0.80
SURPLUS_FACTOR = 1.10
SURPLUS_GOALS = ("Weight Gain", "Build Muscle")
MUSCLE_FOCUS_GOALS = ("Build Muscle", "Body Recomposition")
FAT_RATIO = 0.25


def _value(field: Any) -> Any:
    return getattr(field, "value", field)


def compute_bmr(weight: float, height: float, age: float, gender: str) -> float:
    return 10 * weight + 6.25 * height - 5 * age + GENDER_OFFSETS[_value(gender)]


def lifestyle_factor(occupation: str, commute_style: str, screen_time: float) -> float:
    factor = 1.0
    occupation = _value(occupation)
    if occupation == "standing":
        factor += 0.05
    if occupation == "heavy_lifting":
        factor += 0.12
    if _value(commute_style) == "active":
        factor += 0.04
    if screen_time > 9:
        factor -= 0.03
    return factor


def compute_maintenance(profile: Any) -> Dict[str, float]:
    """
    BMR and NEAT-adjusted maintenance calories for a profile-like object.

    Expects attributes weight, height, age, gender, activity_level, occupation,
    commute_style and screen_time (enum members or their string values).
    """
    bmr = compute_bmr(profile.weight, profile.height, profile.age, profile.gender)
    multiplier = ACTIVITY_LEVEL_MULTIPLIERS[_value(profile.activity_level)]
    factor = lifestyle_factor(profile.occupation, profile.commute_style, profile.screen_time)
    return {"bmr": bmr, "maintenance": bmr * multiplier * factor}


def compute_target_tdee(maintenance: float, medical_goals: Iterable[str]) -> float:
    goals = set(medical_goals)
    # Weight Loss wins when both directions are selected.
    if "Weight Loss" in goals:
        return maintenance * DEFICIT_FACTOR
    if any(goal in goals for goal in SURPLUS_GOALS):
        return maintenance * SURPLUS_FACTOR
    return maintenance


def compute_macros(tdee: float, medical_goals: Iterable[str]) -> Dict[str, float]:
    goals = set(medical_goals)
    protein_ratio = 0.35 if any(goal in goals for goal in MUSCLE_FOCUS_GOALS) else 0.30
    carb_ratio = 1 - protein_ratio - FAT_RATIO
    return {
        "protein": tdee * protein_ratio / 4,
        "carbs": tdee * carb_ratio / 4,
        "fats": tdee * FAT_RATIO / 9,
    }


def compute_targets(profile: Any) -> Dict[str, Any]:
    """Base TDEE, goal-adjusted TDEE and macros, always computed together."""
    maintenance = compute_maintenance(profile)["maintenance"]
    tdee = compute_target_tdee(maintenance, profile.medical_goals)
    return {
        "base_tdee": maintenance,
        "tdee": tdee,
        "macros": compute_macros(tdee, profile.medical_goals),
    }


def partition_goals(medical_goals: Iterable[str]) -> Tuple[List[str], List[str]]:
    goals = list(medical_goals)
    clinical = [g for g in goals if g in CLINICAL_TARGETS]
    performance = [g for g in goals if g in PERFORMANCE_TARGETS]
    return clinical, performance


def goal_strategy(profile: Any) -> Dict[str, str]:
    """Human-readable summary of how the goals shape energy and training."""
    stress_note = (
        " WARNING: Critical systemic stress. Recovery protocols prioritized."
        if profile.stress_level > 7
        else ""
    )
    sleep_note = (
        " WARNING: Major sleep deficit. Anabolic markers potentially suppressed."
        if profile.sleep_hours < 6
        else ""
    )
    goals = set(profile.medical_goals)

    if "Weight Loss" in goals:
        return {
            "strategy": "Metabolic Deficit Architecture",
            "logic": f"Energy capped at 80% of TDEE (20% deficit) for fat oxidation.{sleep_note}",
            "fitness": f"Compound resistance focus.{stress_note}",
        }
    if any(goal in goals for goal in SURPLUS_GOALS):
        return {
            "strategy": "Anabolic Surplus Protocol",
            "logic": f"Energy scaled to 110% of TDEE (10% surplus) for MPS.{sleep_note}",
            "fitness": f"Hypertrophy specific volume targets.{stress_note}",
        }
    return {
        "strategy": "Homeostatic Maintenance",
        "logic": f"Maintenance intake for systemic stability.{sleep_note}",
        "fitness": f"Functional strength and mobility focus.{stress_note}",
    }


def bmi(weight: float, height: float) -> float:
    return weight / ((height / 100) ** 2)
