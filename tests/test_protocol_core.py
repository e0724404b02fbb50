from datetime import datetime

import pytest

from adjustment_gate import FATIGUE, LOCKED, RECALIBRATION
from errors import CollaboratorError, PlanNotFoundError, ProfileValidationError, TemporalLockError
from protocol_core import NO_PLAN, NOTHING_MISSED, targeted_label
from week_clock import DAYS


def _complete_day(service, user_id, day):
    for index, exercise in enumerate(service.workout_plan(user_id)[day].exercises):
        if not exercise.completed:
            service.toggle_exercise(user_id, day, index)


# ---------- onboarding ----------


def test_onboarding_builds_profile_and_both_plans(service, onboarded) -> None:
    profile = service.profile(onboarded)
    assert profile.tdee == pytest.approx(2044.45)
    assert list(service.meal_plan(onboarded)) == DAYS
    assert list(service.workout_plan(onboarded)) == DAYS


def test_failed_generation_commits_nothing(service, coach, onboarding_form) -> None:
    account = service.accounts.sign_up("bob@example.com", "pw")
    coach.fail.add("generate_weekly_workout_plan")
    with pytest.raises(CollaboratorError):
        service.complete_onboarding(account.id, onboarding_form)
    assert service.accounts.get(account.id).profile is None
    assert service.meal_plan(account.id) is None
    assert service.workout_plan(account.id) is None


def test_incomplete_form_is_rejected(service, onboarding_form) -> None:
    account = service.accounts.sign_up("bob@example.com", "pw")
    with pytest.raises(ProfileValidationError):
        service.complete_onboarding(account.id, onboarding_form.model_copy(update={"dietary_patterns": []}))


def test_update_profile_recomputes_and_regenerates(service, coach, onboarded, onboarding_form) -> None:
    heavier = onboarding_form.model_copy(update={"weight": 90, "medical_goals": ["Weight Gain", "Build Muscle"]})
    before = service.profile(onboarded).tdee
    profile = service.update_profile(onboarded, heavier)
    assert profile.tdee > before
    assert profile.tdee == pytest.approx(profile.base_tdee * 1.10)
    assert coach.calls.count("generate_weekly_meal_plan") == 2


def test_profile_required_before_planning(service) -> None:
    account = service.accounts.sign_up("new@example.com", "pw")
    with pytest.raises(ProfileValidationError):
        service.generate_meal_plan(account.id)


# ---------- meals ----------


def test_swap_meal_replaces_one_meal_today(service, onboarded) -> None:
    plan = service.swap_meal(onboarded, "wednesday", 1)
    assert plan["Wednesday"][1].name == "Alternative to Wednesday bowl"
    assert plan["Wednesday"][0].name == "Wednesday oats"
    assert service.meal_plan(onboarded)["Thursday"][1].name == "Thursday bowl"


def test_other_days_are_read_only(service, onboarded) -> None:
    with pytest.raises(TemporalLockError):
        service.swap_meal(onboarded, "Thursday", 0)
    with pytest.raises(TemporalLockError):
        service.accept_meal(onboarded, "Tuesday", 0)
    with pytest.raises(TemporalLockError):
        service.toggle_exercise(onboarded, "Monday", 0)


def test_negative_positions_are_rejected(service, coach, onboarded) -> None:
    with pytest.raises(IndexError):
        service.swap_meal(onboarded, "Wednesday", -1)
    with pytest.raises(IndexError):
        service.accept_meal(onboarded, "Wednesday", -1)
    with pytest.raises(IndexError):
        service.toggle_exercise(onboarded, "Wednesday", -1)
    assert "generate_meal_alternative" not in coach.calls
    assert service.journal.meals(onboarded) == []
    assert not any(ex.completed for ex in service.workout_plan(onboarded)["Wednesday"].exercises)


def test_accept_meal_logs_a_suggested_entry(service, onboarded, clock) -> None:
    entry = service.accept_meal(onboarded, "Wednesday", 0)
    assert entry.is_suggested
    assert entry.day_name == "Wednesday"
    assert entry.name == "Wednesday oats"
    assert entry.timestamp == int(clock.now.timestamp() * 1000)
    assert service.journal.meals(onboarded)[0].id == entry.id


def test_logged_meals_are_filed_under_today(service, onboarded) -> None:
    entry = service.log_meal_text(onboarded, "chicken curry and rice")
    assert entry.day_name == "Wednesday"
    assert not entry.is_suggested
    assert entry.sodium == 900
    image_entry = service.log_meal_image(onboarded, b"jpeg-bytes")
    assert image_entry.name == "Photo Meal"
    with pytest.raises(ValueError):
        service.log_meal_text(onboarded, "   ")


def test_remove_meal_only_today(service, onboarded, clock) -> None:
    entry = service.log_meal_text(onboarded, "toast")
    clock.now = datetime(2024, 1, 4, 8, 0)
    with pytest.raises(TemporalLockError):
        service.remove_meal(onboarded, entry.id)
    clock.now = datetime(2024, 1, 3, 22, 0)
    assert service.remove_meal(onboarded, entry.id)
    assert not service.remove_meal(onboarded, entry.id)


def test_grocery_list_is_cached_until_meal_plan_changes(service, coach, onboarded) -> None:
    first = service.grocery_list(onboarded)
    second = service.grocery_list(onboarded)
    assert first == second
    assert coach.calls.count("generate_grocery_list") == 1

    service.generate_meal_plan(onboarded)
    service.grocery_list(onboarded)
    assert coach.calls.count("generate_grocery_list") == 2


def test_grocery_list_needs_a_meal_plan(service, onboarded, clock) -> None:
    clock.now = datetime(2024, 1, 10)
    with pytest.raises(PlanNotFoundError):
        service.grocery_list(onboarded)


# ---------- workouts and the daily gate ----------


def test_fatigue_adjustment_replaces_today_and_locks(service, coach, onboarded) -> None:
    result = service.adjust_for_fatigue(onboarded, 9)
    assert result.ok
    assert result.value["Wednesday"].rationale == "Fatigue 9"
    assert service.workout_plan(onboarded)["Wednesday"].intensity == "low"
    assert service.workout_plan(onboarded)["Wednesday"].date == "2024-01-03T09:30:00"
    assert service.workout_plan(onboarded)["Tuesday"].rationale == "Base week"
    assert service.gate.lock_info(onboarded, service.clock()) == {"locked": True, "trigger": FATIGUE}

    again = service.generate_targeted_workout(onboarded, split="upper_push")
    assert again.locked
    assert "generate_specialized_workout" not in coach.calls


def test_targeted_workout(service, onboarded) -> None:
    result = service.generate_targeted_workout(onboarded, muscles=["lats", "biceps"])
    assert result.ok
    assert service.workout_plan(onboarded)["Wednesday"].rationale == "Target: Muscle Specific: lats, biceps"


def test_targeted_label() -> None:
    assert targeted_label("full_body", []) == "Full Body"
    assert targeted_label("core", ["abs"]) == "Muscle Specific: abs"
    with pytest.raises(ValueError):
        targeted_label("legs_day", [])
    with pytest.raises(ValueError):
        targeted_label(None, ["wings"])
    with pytest.raises(ValueError):
        targeted_label(None, [])


def test_recalibration_rebuilds_the_week(service, coach, onboarded) -> None:
    assert service.missed_days(onboarded) == ["Monday", "Tuesday"]
    tag = service.plans.week_tag(onboarded, "workout")

    result = service.recalibrate(onboarded)
    assert result.ok
    assert coach.last_request.full_body_next
    assert coach.last_request.remaining_days == DAYS[2:]
    week = service.workout_plan(onboarded)
    assert {week[day].rationale for day in DAYS[2:]} == {"Recalibrated"}
    assert week["Monday"].rationale == "Base week"
    assert service.plans.week_tag(onboarded, "workout") == tag
    assert service.gate.lock_info(onboarded, service.clock())["trigger"] == RECALIBRATION

    blocked = service.adjust_for_fatigue(onboarded, 3)
    assert blocked.reason == LOCKED


def test_next_day_is_unlocked(service, onboarded, clock) -> None:
    assert service.adjust_for_fatigue(onboarded, 4).ok
    clock.now = datetime(2024, 1, 4, 7, 0)
    assert service.adjust_for_fatigue(onboarded, 4).ok


def test_failed_adjustment_does_not_lock(service, coach, onboarded) -> None:
    coach.fail.add("generate_daily_workout")
    with pytest.raises(CollaboratorError):
        service.adjust_for_fatigue(onboarded, 8)
    assert not service.gate.is_locked(onboarded, service.clock())
    assert service.workout_plan(onboarded)["Wednesday"].rationale == "Base week"


def test_adjustments_without_a_plan_are_not_attempted(service, coach, onboarded, clock) -> None:
    clock.now = datetime(2024, 1, 10, 9, 0)
    assert service.adjust_for_fatigue(onboarded, 5).reason == NO_PLAN
    assert service.recalibrate(onboarded).reason == NO_PLAN
    assert service.generate_targeted_workout(onboarded, split="arms").reason == NO_PLAN
    assert not service.gate.is_locked(onboarded, clock.now)


def test_nothing_to_recalibrate_on_monday(service, onboarded, clock) -> None:
    clock.now = datetime(2024, 1, 1, 9, 0)
    result = service.recalibrate(onboarded)
    assert result.reason == NOTHING_MISSED
    assert not service.gate.is_locked(onboarded, clock.now)


def test_fatigue_level_is_bounded(service, onboarded) -> None:
    with pytest.raises(ValueError):
        service.adjust_for_fatigue(onboarded, 11)


def test_completing_a_day_journals_it_once(service, onboarded) -> None:
    workout = service.toggle_exercise(onboarded, "Wednesday", 0)
    assert not workout.completed
    assert service.journal.workouts(onboarded) == []

    workout = service.toggle_exercise(onboarded, "Wednesday", 1)
    assert workout.completed
    assert service.workout_plan(onboarded)["Wednesday"].completed

    # untick and tick again: still a single journal record
    service.toggle_exercise(onboarded, "Wednesday", 1)
    service.toggle_exercise(onboarded, "Wednesday", 1)
    assert [w.id for w in service.journal.workouts(onboarded)] == [workout.id]


def test_completed_days_are_not_missed(service, onboarded, clock) -> None:
    clock.now = datetime(2024, 1, 1, 18, 0)
    _complete_day(service, onboarded, "Monday")
    clock.now = datetime(2024, 1, 3, 9, 30)
    assert service.missed_days(onboarded) == ["Tuesday"]


# ---------- coach ----------


def test_coach_chat_sends_todays_context(service, coach, onboarded) -> None:
    service.log_meal_text(onboarded, "porridge")
    reply = service.coach_chat(onboarded, "Should I train tonight?")
    assert reply == "Take the stairs on your commute."
    assert coach.last_request["caloriesToday"] == 650
    assert coach.last_request["mealsToday"] == ["Porridge"]
    assert coach.last_request["workoutsCompleted"] == 0


def test_coach_chat_ignores_last_weeks_meals(service, coach, onboarded, clock) -> None:
    service.log_meal_text(onboarded, "porridge")
    clock.now = datetime(2024, 1, 10, 9, 30)
    service.coach_chat(onboarded, "How am I doing?")
    assert coach.last_request["caloriesToday"] == 0
    assert coach.last_request["mealsToday"] == []
