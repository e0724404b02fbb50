from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

import metabolic_model
from records import MealEntry, UserProfile, WorkoutPlan
from week_clock import day_name

NUTRIENT_COLUMNS = ["calories", "protein", "carbs", "fats", "fiber", "sodium", "potassium"]

WORKOUT_COST = {"high": 400, "medium": 250, "low": 150}

FIBER_TARGET_G = 30
OPTIMAL_WINDOW_KCAL = 200


def _meals_frame(meals: Iterable[MealEntry]) -> pd.DataFrame:
    rows = []
    for meal in meals:
        row = {col: getattr(meal, col) or 0 for col in NUTRIENT_COLUMNS}
        row["date"] = datetime.fromtimestamp(meal.timestamp / 1000).date()
        row["day_name"] = meal.day_name
        rows.append(row)
    return pd.DataFrame(rows, columns=["date", "day_name"] + NUTRIENT_COLUMNS)


def daily_totals(meals: Iterable[MealEntry], target_date: date) -> Dict[str, float]:
    """Sum every nutrient over the meals logged on `target_date`."""
    df = _meals_frame(meals)
    df = df[df["date"] == target_date]
    return {col: float(df[col].sum()) for col in NUTRIENT_COLUMNS}


def intake_history(meals: Iterable[MealEntry]) -> pd.DataFrame:
    """Per-date nutrient totals, oldest first."""
    df = _meals_frame(meals)
    if df.empty:
        return pd.DataFrame(columns=["date"] + NUTRIENT_COLUMNS)
    return df.groupby("date", as_index=False)[NUTRIENT_COLUMNS].sum().sort_values("date")


def energy_status(total_calories: float, tdee: float) -> str:
    if total_calories <= 0:
        return "No Data"
    diff = total_calories - tdee
    if abs(diff) <= OPTIMAL_WINDOW_KCAL:
        return "Optimal"
    return "Surplus" if diff > 0 else "Deficit"


def readiness_score(profile: UserProfile) -> float:
    score = (profile.sleep_hours / 8) * 50 + (10 - profile.stress_level) * 5
    return min(100.0, max(0.0, score))


def synergy_score(total_calories: float, tdee: float) -> int:
    if tdee <= 0:
        return 0
    return round(total_calories / tdee * 100)


def energy_breakdown(
    profile: UserProfile,
    total_calories: float,
    workout: Optional[WorkoutPlan] = None,
) -> Dict[str, int]:
    bmr = metabolic_model.compute_maintenance(profile)["bmr"]
    workout_cost = WORKOUT_COST.get(workout.intensity, 0) if workout else 0
    return {
        "basal": round(bmr),
        "activity": round(profile.base_tdee - bmr + workout_cost),
        "remaining": max(0, round(profile.tdee - total_calories)),
    }


def history_records(meals: Iterable[MealEntry]) -> List[Dict[str, Any]]:
    history = intake_history(meals)
    return [
        {"date": row["date"].isoformat(), **{col: float(row[col]) for col in NUTRIENT_COLUMNS}}
        for row in history.to_dict("records")
    ]


def profile_summary(profile: UserProfile) -> Dict[str, Any]:
    return {
        "bmi": round(metabolic_model.bmi(profile.weight, profile.height), 1),
        **metabolic_model.goal_strategy(profile),
    }


def get_daily_plan(service: Any, user_id: str, target_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Summarise one day for a user from their stored plans and journal.

    Returns a dictionary with keys:
        - date (YYYY-MM-DD string)
        - weekday (weekday name)
        - targets (tdee and macro goals)
        - profile (BMI and goal strategy)
        - intake (nutrient totals for the day)
        - scores (energy status, readiness, synergy)
        - energy (basal / activity / remaining breakdown)
        - workout (today's planned workout summary or None)
        - meals (today's planned meal names)
        - messages (dict of informational messages per section)
    """
    target_date = target_date or service.clock().date()
    weekday_name = day_name(target_date)
    profile = service.profile(user_id)

    intake = daily_totals(service.journal.meals(user_id), target_date)

    workout_plan = service.workout_plan(user_id) or {}
    meal_plan = service.meal_plan(user_id) or {}
    today_workout = workout_plan.get(weekday_name)
    completed = today_workout if today_workout is not None and today_workout.completed else None
    planned_meals = meal_plan.get(weekday_name, [])

    workout_summary = None
    if today_workout is not None:
        done = sum(1 for ex in today_workout.exercises if ex.completed)
        workout_summary = {
            "intensity": today_workout.intensity,
            "rationale": today_workout.rationale,
            "exercises": [
                {"name": ex.name, "sets": ex.sets, "reps": ex.reps, "completed": ex.completed}
                for ex in today_workout.exercises
            ],
            "progress": f"{done}/{len(today_workout.exercises)}",
            "completed": today_workout.completed,
        }

    return {
        "date": target_date.isoformat(),
        "weekday": weekday_name,
        "targets": {"tdee": round(profile.tdee), **profile.macros.model_dump()},
        "profile": profile_summary(profile),
        "intake": intake,
        "scores": {
            "energy_status": energy_status(intake["calories"], profile.tdee),
            "readiness": readiness_score(profile),
            "synergy": synergy_score(intake["calories"], profile.tdee),
            "fiber_target": FIBER_TARGET_G,
        },
        "energy": energy_breakdown(profile, intake["calories"], completed),
        "workout": workout_summary,
        "meals": [{"type": m.type, "name": m.name, "calories": m.calories} for m in planned_meals],
        "messages": {
            "workout": None if workout_summary else "No workout plan for this week yet.",
            "meals": None if planned_meals else "No meal plan for this day yet.",
        },
    }


def print_daily_plan(plan: Dict[str, Any]) -> None:
    print("=" * 50)
    print(f" AURAFIT DAILY VIEW FOR {plan.get('weekday', '').upper()} ({plan.get('date')})")
    print("=" * 50)

    targets = plan["targets"]
    intake = plan["intake"]
    print("\n[Energy]")
    print(f"  Target: {targets['tdee']} kcal | Eaten: {round(intake['calories'])} kcal")
    print(
        f"  Macros: P {round(intake['protein'])}/{round(targets['protein'])}g | "
        f"C {round(intake['carbs'])}/{round(targets['carbs'])}g | "
        f"F {round(intake['fats'])}/{round(targets['fats'])}g"
    )
    scores = plan["scores"]
    print(f"  Status: {scores['energy_status']}")
    print(f"  Readiness: {round(scores['readiness'])}% | Synergy: {scores['synergy']}%")

    summary = plan.get("profile")
    if summary:
        print(f"\n[Strategy] {summary['strategy']} (BMI {summary['bmi']})")
        print(f"  {summary['logic']}")
        print(f"  {summary['fitness']}")

    print("\n[Workout]")
    workout = plan.get("workout")
    if workout:
        print(f"  Intensity: {workout['intensity']} ({workout['progress']} done)")
        for ex in workout["exercises"]:
            mark = "x" if ex["completed"] else " "
            print(f"   [{mark}] {ex['name']}: {ex['sets']} x {ex['reps']}")
    else:
        print(f"  {plan['messages'].get('workout')}")

    print("\n[Meals]")
    meals: List[Dict[str, Any]] = plan.get("meals") or []
    if meals:
        for meal in meals:
            print(f"   - {meal['type']}: {meal['name']} ({round(meal['calories'])} kcal)")
    else:
        print(f"  {plan['messages'].get('meals')}")

    print("\nDone.\n")
