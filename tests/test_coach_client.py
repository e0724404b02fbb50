import json
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from coach_client import (
    CoachClient,
    diet_integration,
    feeding_protocol,
    recovery_override,
    volume_policy,
)
from config import Settings
from errors import CollaboratorError
from recalibration import build_request
from week_clock import DAYS

MEAL = {
    "name": "Paneer tikka bowl",
    "calories": 540,
    "protein": 38,
    "carbs": 45,
    "fats": 20,
    "sodium": 700,
    "potassium": 650,
    "fiber": 8,
    "healthScore": 8,
    "type": "Lunch",
}

WORKOUT = {
    "exercises": [
        {"name": "Deadlift", "sets": 4, "reps": 5, "description": "Hinge. Stand tall."},
        {"name": "Row", "sets": 3, "reps": 10, "description": "Pull. Squeeze."},
    ],
    "intensity": "Moderate",
    "rationale": "Desk job, so posterior chain volume is prioritised.",
}


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        content = reply if isinstance(reply, str) or reply is None else json.dumps(reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _coach(*replies):
    completions = FakeCompletions(replies)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    settings = Settings(openai_api_key="test", model="small-model", planner_model="big-model")
    return CoachClient(client, settings), completions


def test_analyze_meal_text(profile) -> None:
    coach, completions = _coach(MEAL)
    meal = coach.analyze_meal_text("paneer bowl", profile)
    assert meal.name == "Paneer tikka bowl"
    assert meal.health_score == 8
    request = completions.requests[0]
    assert request["model"] == "small-model"
    assert request["response_format"] == {"type": "json_object"}
    assert "paneer bowl" in request["messages"][1]["content"]


def test_analyze_meal_image_sends_a_data_url(profile) -> None:
    coach, completions = _coach(MEAL)
    coach.analyze_meal_image(b"\x89PNG", profile, "image/png")
    content = completions.requests[0]["messages"][1]["content"]
    assert content[1]["image_url"]["url"] == "data:image/png;base64,iVBORw=="


def test_meal_analysis_requires_sodium_and_potassium(profile) -> None:
    partial = {k: v for k, v in MEAL.items() if k != "sodium"}
    coach, _ = _coach(partial)
    with pytest.raises(CollaboratorError):
        coach.analyze_meal_text("bowl", profile)


@pytest.mark.parametrize("reply", ["", "   ", None, "not json at all", {"unexpected": True}])
def test_unusable_replies_raise(profile, reply) -> None:
    coach, _ = _coach(reply)
    with pytest.raises(CollaboratorError):
        coach.analyze_meal_text("bowl", profile)


def test_transport_errors_raise(profile) -> None:
    coach, _ = _coach(OpenAIError("timeout"))
    with pytest.raises(CollaboratorError):
        coach.generate_meal_alternative(profile, "Lunch", "Paneer bowl")


def test_weekly_meal_plan_normalises_days(profile) -> None:
    days = [{"day": day.lower(), "meals": [MEAL]} for day in DAYS]
    coach, completions = _coach({"days": days})
    plan = coach.generate_weekly_meal_plan(profile)
    assert list(plan) == DAYS
    assert plan["Sunday"][0].name == "Paneer tikka bowl"
    assert "2-3 meals" in completions.requests[0]["messages"][1]["content"]


def test_weekly_meal_plan_must_cover_the_week(profile) -> None:
    days = [{"day": day, "meals": [MEAL]} for day in DAYS[:6]]
    coach, _ = _coach({"days": days})
    with pytest.raises(CollaboratorError, match="Sunday"):
        coach.generate_weekly_meal_plan(profile)


def test_weekly_meal_plan_rejects_duplicate_days(profile) -> None:
    days = [{"day": day, "meals": [MEAL]} for day in DAYS] + [{"day": "monday", "meals": [MEAL]}]
    coach, _ = _coach({"days": days})
    with pytest.raises(CollaboratorError, match="twice"):
        coach.generate_weekly_meal_plan(profile)


def test_weekly_workout_plan_gets_fresh_ids(profile) -> None:
    days = [{"day": day, "workout": WORKOUT} for day in DAYS]
    coach, completions = _coach({"days": days})
    plan = coach.generate_weekly_workout_plan(profile)
    assert [plan[day].day_name for day in DAYS] == DAYS
    assert len({p.id for p in plan.values()}) == 7
    assert plan["Monday"].intensity == "medium"
    assert not plan["Monday"].completed
    assert completions.requests[0]["model"] == "big-model"


def test_workout_without_exercises_is_rejected(profile) -> None:
    coach, _ = _coach(dict(WORKOUT, exercises=[]))
    with pytest.raises(CollaboratorError):
        coach.generate_daily_workout(profile, 5, "Wednesday")


def test_daily_workout_includes_the_recovery_filter(profile) -> None:
    tired = profile.model_copy(update={"sleep_hours": 5})
    coach, completions = _coach(WORKOUT)
    plan = coach.generate_daily_workout(tired, 9, "Wednesday", "Dynamic fatigue adjust")
    assert plan.day_name == "Wednesday"
    prompt = completions.requests[0]["messages"][1]["content"]
    assert "Sleep < 6h" in prompt
    assert "Dynamic fatigue adjust" in prompt


def test_specialized_workout_mentions_muscles(profile) -> None:
    coach, completions = _coach(WORKOUT)
    coach.generate_specialized_workout(profile, "Muscle Specific: lats", ["lats"], "Friday")
    assert "lats" in completions.requests[0]["messages"][1]["content"]


def test_recalibrate_plan_sends_missed_days(profile) -> None:
    days = [{"day": day, "workout": WORKOUT} for day in DAYS]
    coach, completions = _coach({"days": days}, {"days": days})
    current = coach.generate_weekly_workout_plan(profile)
    request = build_request(profile, current, ["Monday", "Tuesday"], "Wednesday")
    updated = coach.recalibrate_plan(request)
    assert set(updated) == set(DAYS)
    prompt = completions.requests[1]["messages"][1]["content"]
    assert "MISSED DAYS: Monday, Tuesday" in prompt
    assert "full-body" in prompt


def test_grocery_list(profile) -> None:
    reply = {"categories": [{"category": "Produce", "items": [{"name": "Spinach", "amount": "2 bunches"}]}]}
    coach, _ = _coach(reply)
    groceries = coach.generate_grocery_list({"Monday": []})
    assert groceries[0].items[0].name == "Spinach"


def test_coaching_advice_is_free_text(profile) -> None:
    coach, completions = _coach("Walk part of your commute.")
    reply = coach.coaching_advice(profile, {"caloriesToday": 900}, "How am I doing?")
    assert reply == "Walk part of your commute."
    request = completions.requests[0]
    assert "response_format" not in request
    assert "caloriesToday" in request["messages"][0]["content"]


@pytest.mark.parametrize(
    "goals, expected",
    [
        (["Weight Loss", "Build Muscle"], "2-3 meals"),
        (["Weight Gain"], "5-6 meals"),
        (["PCOS/Hormonal Balance"], "4-5 meals"),
        (["Endurance Training (5k/Marathon)"], "5+ meals"),
        (["Halal"], "3 main meals + 1 snack"),
    ],
)
def test_feeding_protocol(goals, expected) -> None:
    assert expected in feeding_protocol(goals)


def test_recovery_override_order(profile) -> None:
    assert "LISS" in recovery_override(profile.model_copy(update={"sleep_hours": 5, "stress_level": 9}), 9)
    assert "Breathwork" in recovery_override(profile.model_copy(update={"stress_level": 8}), 9)
    assert "40%" in recovery_override(profile, 8)
    assert recovery_override(profile, 7) == ""


def test_volume_and_diet_notes(profile) -> None:
    active = profile.model_copy(update={"commute_style": "active", "occupation": "heavy_lifting"})
    note = volume_policy(active)
    assert "fewer gym sets" in note
    assert "active" in note
    assert "Ketogenic" in diet_integration(["Keto", "High Protein"])
    assert "High Protein" in diet_integration(["High Protein"])
    assert diet_integration(["Standard"]) == ""
