from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError

from config import Settings, get_settings
from errors import CollaboratorError
from records import (
    GroceryCategory,
    GroceryList,
    MealAnalysis,
    MealSuggestion,
    Record,
    UserProfile,
    WeeklyMealPlan,
    WeeklyWorkoutPlan,
    WorkoutDraft,
    WorkoutPlan,
)
from week_clock import DAYS, normalize_day_name

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

FITNESS_MATRIX = """The Workout Intensity Matrix:
- Build Muscle -> Hypertrophy focus, High Intensity (RPE 8-9), Resistance Training modality.
- Endurance Training -> Aerobic Capacity focus, Variable Intensity, Zone 2-4 Cardio + Sport-specific drills.
- Body Recomposition -> Fat Loss + Lean Mass focus, Moderate-High Intensity, HIIT + Compound Strength movements.
- Flexibility & Mobility -> Range of Motion focus, Low-Moderate Intensity, Yoga/PNF/Isometrics modality.
"""

MEAL_FIELDS = """{
  "name": "Grilled chicken bowl",
  "calories": 520,
  "protein": 42,
  "carbs": 48,
  "fats": 14,
  "sodium": 640,        // mg
  "potassium": 780,     // mg
  "fiber": 7,           // g
  "healthScore": 8,     // 1-10
  "type": "Lunch"       // e.g. Breakfast, Lunch, Dinner, Snack, Post-Workout
}"""

WORKOUT_FIELDS = """{
  "exercises": [
    {
      "name": "Goblet squat",
      "sets": 3,
      "reps": 10,
      "description": "Exactly two simple sentences on how to perform it.",
      "notes": "optional"
    }
  ],
  "intensity": "low | medium | high",
  "rationale": "How volume and intensity were chosen for this user.",
  "analysis": "Short clinical analysis."
}"""

JSON_ONLY = "Output ONLY valid JSON. No extra text, no comments, no markdown."


def feeding_protocol(medical_goals: Iterable[str]) -> str:
    goals = set(medical_goals)
    if "Weight Loss" in goals:
        return (
            "STRATEGIC PRIORITY: Weight Loss. REQUIREMENT: 2-3 meals. "
            "Larger, satisfying meals that hold the caloric deficit."
        )
    if "Build Muscle" in goals or "Weight Gain" in goals:
        return (
            "STRATEGIC PRIORITY: Build Muscle. REQUIREMENT: 5-6 meals. "
            "Protein-rich meals every 3-4 hours for muscle protein synthesis."
        )
    if "Diabetic Friendly" in goals or "PCOS/Hormonal Balance" in goals:
        return (
            "STRATEGIC PRIORITY: Diabetic Friendly. REQUIREMENT: 4-5 meals. "
            "Smaller, consistent portions to stabilise blood glucose."
        )
    if "Endurance Training (5k/Marathon)" in goals:
        return (
            "STRATEGIC PRIORITY: Endurance Training. REQUIREMENT: 5+ meals. "
            "Fueling windows for recovery and glycogen."
        )
    return "Standard: 3 main meals + 1 snack."


def volume_policy(profile: UserProfile) -> str:
    lines = ["Dynamic Volume Adjustment:"]
    if profile.occupation == "heavy_lifting":
        lines.append("- Occupation: manual labour. Use fewer gym sets.")
    elif profile.occupation == "sitting":
        lines.append("- Occupation: office. Add postural work (face pulls, bridges).")
    else:
        lines.append("- Occupation: standing. Keep standard volume.")
    if profile.commute_style == "active":
        lines.append("- Commute: active. Lower gym volume to prevent overtraining.")
    else:
        lines.append("- Commute: passive.")
    if profile.activity_level == "SEDENTARY":
        lines.append("- NEAT: sedentary. Mandatory movement snacks through the day.")
    else:
        lines.append(f"- NEAT: {profile.activity_level}.")
    return "\n".join(lines)


def recovery_override(profile: UserProfile, fatigue_level: int) -> str:
    """First matching recovery filter for a single day's workout, or an empty string."""
    if profile.sleep_hours < 6:
        return (
            "RECOVERY FILTER: Sleep < 6h. MANDATORY: Low-Intensity Steady State (LISS) "
            "or Active Recovery day. No heavy lifting."
        )
    if profile.stress_level >= 8:
        return (
            f"RECOVERY FILTER: Critical Stress ({profile.stress_level}/10). MANDATORY: "
            "Parasympathetic focus. Mobility and Breathwork only."
        )
    if fatigue_level >= 8:
        return (
            f"DELOAD MANDATE: High Fatigue ({fatigue_level}/10). Reduce sets/reps by 40%. "
            "Focus on technique."
        )
    return ""


def diet_integration(dietary_patterns: Iterable[str]) -> str:
    patterns = set(dietary_patterns)
    if "Keto" in patterns:
        return "Diet: Ketogenic. Focus on lower-rep, high-power sets due to lower glycogen."
    if "High Protein" in patterns:
        return "Diet: High Protein. Allow higher training frequency for recovery."
    return ""


def _profile_line(profile: UserProfile) -> str:
    return (
        f"User Profile: {profile.age}yo {profile.gender}, {profile.weight}kg, "
        f"Equipment: {profile.equipment}. Goals: {', '.join(profile.medical_goals)}."
    )


class DayMeals(Record):
    day: str
    meals: List[MealSuggestion] = Field(min_length=1)


class WeeklyMealResponse(Record):
    days: List[DayMeals]


class DayWorkout(Record):
    day: str
    workout: WorkoutDraft


class WeeklyWorkoutResponse(Record):
    days: List[DayWorkout]


class GroceryResponse(Record):
    categories: List[GroceryCategory]


def _by_weekday(entries: List[Any], value_of) -> Dict[str, Any]:
    """Index day entries by canonical weekday name; all seven days are required."""
    week: Dict[str, Any] = {}
    for entry in entries:
        try:
            day = normalize_day_name(entry.day)
        except ValueError as exc:
            raise CollaboratorError(f"Collaborator returned an unknown day '{entry.day}'") from exc
        if day in week:
            raise CollaboratorError(f"Collaborator returned {day} twice")
        week[day] = value_of(day, entry)
    missing = [day for day in DAYS if day not in week]
    if missing:
        raise CollaboratorError(f"Collaborator plan is missing: {', '.join(missing)}")
    return {day: week[day] for day in DAYS}


class CoachClient:
    """
    The only component that talks to the generative-AI service.

    Every structured reply is parsed and validated here; anything unusable raises
    CollaboratorError and nothing is returned to be stored.
    """

    def __init__(self, client: Any, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CoachClient":
        settings = settings or get_settings()
        return cls(OpenAI(api_key=settings.openai_api_key), settings)

    def _complete(self, model: str, messages: List[Dict[str, Any]], json_mode: bool) -> str:
        kwargs: Dict[str, Any] = {"model": model, "messages": messages}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            completion = self.client.chat.completions.create(**kwargs)
            content = completion.choices[0].message.content
        except OpenAIError as exc:
            logger.exception("Collaborator request failed")
            raise CollaboratorError(f"Failed to contact model: {exc}") from exc
        except (IndexError, AttributeError) as exc:
            raise CollaboratorError("Collaborator returned no choices") from exc
        if not content or not content.strip():
            raise CollaboratorError("Collaborator returned an empty response")
        return content.strip()

    def _request(
        self,
        prompt: str,
        response_model: Type[ModelT],
        model: Optional[str] = None,
        image: Optional[Dict[str, Any]] = None,
    ) -> ModelT:
        user_content: Any = prompt
        if image is not None:
            user_content = [{"type": "text", "text": prompt}, image]
        messages = [
            {"role": "system", "content": "You are AuraFit AI. " + JSON_ONLY},
            {"role": "user", "content": user_content},
        ]
        raw = self._complete(model or self.settings.model, messages, json_mode=True)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CollaboratorError("The model did not return valid JSON.") from exc
        try:
            return response_model.model_validate(data)
        except ValidationError as exc:
            logger.warning("Rejected collaborator payload: %s", exc)
            raise CollaboratorError(f"Malformed collaborator payload: {exc}") from exc

    # ---------- Meals ----------

    def _meal_filters(self, profile: UserProfile) -> str:
        return (
            f"Patterns: {', '.join(profile.dietary_patterns)}. "
            f"Priorities: {', '.join(profile.medical_goals)}."
        )

    def analyze_meal_text(self, text: str, profile: UserProfile) -> MealAnalysis:
        prompt = (
            f'Analyze this meal description: "{text}".\n'
            f"{self._meal_filters(profile)}\n"
            "Estimate calories, macros, sodium (mg), potassium (mg), fiber (g) and a "
            "health score (1-10). Return one object shaped like:\n" + MEAL_FIELDS
        )
        return self._request(prompt, MealAnalysis)

    def analyze_meal_image(
        self, image: bytes, profile: UserProfile, mime_type: str = "image/jpeg"
    ) -> MealAnalysis:
        encoded = base64.b64encode(image).decode("ascii")
        image_part = {
            "type": "image_url",
            "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
        }
        prompt = (
            "Identify this meal.\n"
            f"{self._meal_filters(profile)}\n"
            "Estimate calories, macros, sodium (mg), potassium (mg), fiber (g) and a "
            "health score (1-10). Return one object shaped like:\n" + MEAL_FIELDS
        )
        return self._request(prompt, MealAnalysis, image=image_part)

    def generate_weekly_meal_plan(self, profile: UserProfile) -> WeeklyMealPlan:
        prompt = (
            "Create a comprehensive 7-day meal plan.\n"
            f"{_profile_line(profile)}\n"
            f"FEEDING PROTOCOL: {feeding_protocol(profile.medical_goals)}\n"
            f"Dietary patterns: {', '.join(profile.dietary_patterns)}. "
            f"Allergies: {', '.join(profile.allergies) or 'none'}.\n"
            f"Target Daily Energy: {round(profile.tdee)} kcal.\n"
            'Return {"days": [{"day": "Monday", "meals": [<meal>, ...]}, ...]} covering '
            "Monday to Sunday, where each meal is shaped like:\n" + MEAL_FIELDS
        )
        response = self._request(prompt, WeeklyMealResponse)
        return _by_weekday(response.days, lambda day, entry: entry.meals)

    def generate_meal_alternative(
        self, profile: UserProfile, meal_type: str, current_meal: str
    ) -> MealSuggestion:
        prompt = (
            f'Suggest a local alternative for {meal_type} instead of "{current_meal}".\n'
            f"{self._meal_filters(profile)}\n"
            "Return one object shaped like:\n" + MEAL_FIELDS
        )
        return self._request(prompt, MealSuggestion)

    def generate_grocery_list(self, meal_plan: WeeklyMealPlan) -> GroceryList:
        plan_json = json.dumps(
            {day: [meal.model_dump(mode="json") for meal in meals] for day, meals in meal_plan.items()}
        )
        prompt = (
            f"Extract a curated shopping list for the whole week from this plan: {plan_json}\n"
            'Group by category. Return {"categories": [{"category": "Produce", '
            '"items": [{"name": "Spinach", "amount": "2 bunches"}]}]}.'
        )
        return self._request(prompt, GroceryResponse).categories

    # ---------- Workouts ----------

    def generate_weekly_workout_plan(self, profile: UserProfile) -> WeeklyWorkoutPlan:
        prompt = (
            "Generate a 7-day weekly workout routine.\n"
            f"{FITNESS_MATRIX}\n"
            f"{volume_policy(profile)}\n"
            f"{_profile_line(profile)}\n"
            "For each exercise, provide 2-sentence biomechanical guidance. In 'rationale', "
            f"explain how volume was adjusted for their {profile.occupation} job and "
            f"{profile.commute_style} commute.\n"
            'Return {"days": [{"day": "Monday", "workout": <workout>}, ...]} covering '
            "Monday to Sunday, where each workout is shaped like:\n" + WORKOUT_FIELDS
        )
        response = self._request(prompt, WeeklyWorkoutResponse, model=self.settings.planner_model)
        return _by_weekday(response.days, lambda day, entry: entry.workout.to_plan(day))

    def generate_daily_workout(
        self,
        profile: UserProfile,
        fatigue_level: int,
        day_name: str,
        history_notes: str = "",
    ) -> WorkoutPlan:
        prompt = "\n".join(
            part
            for part in (
                "Generate a daily workout routine.",
                FITNESS_MATRIX,
                recovery_override(profile, fatigue_level),
                diet_integration(profile.dietary_patterns),
                _profile_line(profile),
                f"Notes: {history_notes}" if history_notes else "",
                "Include a 'rationale' that references the user's stress "
                f"({profile.stress_level}/10), sleep ({profile.sleep_hours}h) and "
                f"occupational routine ({profile.occupation}).",
                "Return one object shaped like:\n" + WORKOUT_FIELDS,
            )
            if part
        )
        draft = self._request(prompt, WorkoutDraft, model=self.settings.planner_model)
        return draft.to_plan(day_name)

    def generate_specialized_workout(
        self,
        profile: UserProfile,
        target: str,
        muscles: List[str],
        day_name: str,
    ) -> WorkoutPlan:
        focus = f"Specifically focus on these muscles: {', '.join(muscles)}.\n" if muscles else ""
        prompt = (
            f"Generate a specialized workout routine targeting: {target}.\n"
            f"{focus}"
            f"{FITNESS_MATRIX}\n"
            f"{_profile_line(profile)}\n"
            "The routine must exclusively focus on the target split/muscles. Include a "
            "'rationale' explaining the targeted biomechanical focus.\n"
            "Return one object shaped like:\n" + WORKOUT_FIELDS
        )
        draft = self._request(prompt, WorkoutDraft, model=self.settings.planner_model)
        return draft.to_plan(day_name)

    def recalibrate_plan(self, request: Any) -> WeeklyWorkoutPlan:
        """Full seven-day replacement plan for a RecalibrationRequest."""
        rules = "\n".join(f"{i}. {line}" for i, line in enumerate(request.instructions, 1))
        prompt = (
            "Protocol Recalibration.\n"
            f"Current Plan: {json.dumps(request.plan_payload())}\n"
            f"MISSED DAYS: {', '.join(request.missed_days)}.\n"
            f"REMAINING DAYS: {', '.join(request.remaining_days)}.\n"
            f"RULES:\n{rules}\n"
            f"{_profile_line(request.profile)}\n"
            'Return {"days": [{"day": "Monday", "workout": <workout>}, ...]} for all seven '
            "days, where each workout is shaped like:\n" + WORKOUT_FIELDS
        )
        response = self._request(prompt, WeeklyWorkoutResponse, model=self.settings.planner_model)
        return _by_weekday(response.days, lambda day, entry: entry.workout.to_plan(day))

    # ---------- Chat ----------

    def coaching_advice(
        self, profile: UserProfile, daily_stats: Dict[str, Any], message: str
    ) -> str:
        messages = [
            {
                "role": "system",
                "content": (
                    "You are AuraFit AI Coach.\n"
                    f"Context: Job: {profile.occupation}, Commute: {profile.commute_style}, "
                    f"Stress: {profile.stress_level}/10, Sleep: {profile.sleep_hours}h.\n"
                    f"Progress: {json.dumps(daily_stats, default=str)}\n"
                    "MANDATORY: Reference their specific lifestyle variables "
                    "(commute/occupation) in the advice."
                ),
            },
            {"role": "user", "content": message},
        ]
        return self._complete(self.settings.model, messages, json_mode=False)
