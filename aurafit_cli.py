from __future__ import annotations

import getpass
import logging
from typing import List, Optional

from coach_client import CoachClient
from config import get_settings
from daily_planner import get_daily_plan, history_records, print_daily_plan
from errors import AuraFitError
from kv_store import JsonFileStore
from metabolic_model import GOAL_CATEGORIES, SENSITIVITY
from onboarding import DIETARY_OPTIONS, TOTAL_STEPS, is_step_valid
from protocol_core import MUSCLE_REGIONS, WORKOUT_SPLITS, ProtocolService
from records import (
    ActivityLevel,
    CommuteStyle,
    Equipment,
    Gender,
    Habits,
    OnboardingForm,
    Occupation,
    UserAccount,
)

logger = logging.getLogger(__name__)

COMMANDS = {
    "today": "show today's targets, meals and workout",
    "meal": "log a meal from a text description",
    "done": "toggle an exercise in today's workout",
    "fatigue": "regenerate today's workout for a fatigue level (1-10)",
    "target": "regenerate today's workout for a split or muscle group",
    "recalibrate": "rebuild the week around missed sessions",
    "groceries": "show this week's grocery list",
    "history": "show calories and macros logged per day",
    "chat": "ask the coach",
    "quit": "exit",
}


def _choose(label: str, options: List[str]) -> str:
    while True:
        print(f"{label}: {' / '.join(options)}")
        choice = input("> ").strip()
        for option in options:
            if choice.lower() == option.lower():
                return option
        print("Invalid choice, please try again.")


def _number(label: str) -> float:
    while True:
        raw = input(f"{label}: ").strip()
        try:
            return float(raw)
        except ValueError:
            print("Please enter a number.")


def _tags(label: str, options: List[str], listed: bool = True) -> List[str]:
    print(f"{label} (comma separated): {', '.join(options) if listed else ''}")
    known = {option.lower(): option for option in options}
    raw = input("> ")
    tags = [tag.strip() for tag in raw.split(",") if tag.strip()]
    return [known.get(tag.lower(), tag) for tag in tags]


def prompt_onboarding() -> OnboardingForm:
    form = OnboardingForm()
    step = 1
    while step <= TOTAL_STEPS:
        print(f"\n--- Step {step} of {TOTAL_STEPS} ---")
        if step == 1:
            form.age = int(_number("Age"))
            form.gender = _choose("Gender", [g.value for g in Gender])
            form.weight = _number("Weight (kg)")
            form.height = _number("Height (cm)")
        elif step == 2:
            form.occupation = _choose("Occupation", [o.value for o in Occupation])
            form.commute_style = _choose("Commute", [c.value for c in CommuteStyle])
            form.activity_level = _choose("Activity level", [a.value for a in ActivityLevel])
            form.screen_time = _number("Screen time (hours/day)")
        elif step == 3:
            form.sleep_hours = _number("Sleep (hours/night)")
            form.stress_level = int(_number("Stress level (1-10)"))
            form.habits = _choose("Smoking/alcohol habits", [h.value for h in Habits])
            form.equipment = _choose("Equipment", [e.value for e in Equipment])
        elif step == 4:
            form.dietary_patterns = _tags("Dietary patterns", list(DIETARY_OPTIONS))
            form.allergies = _tags("Allergies", SENSITIVITY)
        else:
            for category, tags in GOAL_CATEGORIES.items():
                print(f"  {category}: {', '.join(tags)}")
            form.medical_goals = _tags(
                "Goals (pick at least one clinical and one performance target)",
                [tag for tags in GOAL_CATEGORIES.values() for tag in tags],
                listed=False,
            )
        if is_step_valid(step, form):
            step += 1
        else:
            print("That step is incomplete, let's try it again.")
    return form


def authenticate(service: ProtocolService) -> Optional[UserAccount]:
    choice = _choose("Account", ["login", "signup", "quit"])
    if choice == "quit":
        return None
    email = input("Email: ").strip()
    password = getpass.getpass("Password: ")
    if choice == "signup":
        account = service.accounts.sign_up(email, password)
        print("Account created. Let's build your protocol.")
    else:
        account = service.accounts.log_in(email, password)
    if account.profile is None:
        print("(This can take a minute while both weekly plans are generated.)")
        service.complete_onboarding(account.id, prompt_onboarding())
        account = service.accounts.get(account.id)
    return account


def _print_result(result, success: str) -> None:
    if result.ok:
        print(success)
    elif result.locked:
        print("Protocol locked: the adjustment quota for today is already used.")
    else:
        print(f"Nothing to do ({result.reason}).")


def run_command(service: ProtocolService, account: UserAccount, command: str) -> None:
    user_id = account.id
    if command == "today":
        if service.workout_plan(user_id) is None:
            print("Generating this week's workout plan...")
            service.generate_workout_plan(user_id)
        if service.meal_plan(user_id) is None:
            print("Generating this week's meal plan...")
            service.generate_meal_plan(user_id)
        print_daily_plan(get_daily_plan(service, user_id))
    elif command == "meal":
        entry = service.log_meal_text(user_id, input("What did you eat? "))
        print(f"Logged {entry.name}: {round(entry.calories)} kcal, {round(entry.protein)}g protein.")
    elif command == "done":
        index = int(_number("Exercise number")) - 1
        workout = service.toggle_exercise(user_id, service.today(), index)
        if workout.completed:
            print("Session complete and saved to your journal.")
    elif command == "fatigue":
        level = int(_number("Fatigue (1-10)"))
        _print_result(service.adjust_for_fatigue(user_id, level), "Today's workout was adjusted.")
    elif command == "target":
        choice = _choose("Split or muscle", list(WORKOUT_SPLITS) + list(MUSCLE_REGIONS))
        if choice in WORKOUT_SPLITS:
            result = service.generate_targeted_workout(user_id, split=choice)
        else:
            result = service.generate_targeted_workout(user_id, muscles=[choice])
        _print_result(result, "Today's workout now targets " + choice + ".")
    elif command == "recalibrate":
        missed = service.missed_days(user_id)
        if missed:
            print(f"Missed: {', '.join(missed)}")
        _print_result(service.recalibrate(user_id), "The rest of the week was recalibrated.")
    elif command == "groceries":
        for category in service.grocery_list(user_id):
            print(f"[{category.category}]")
            for item in category.items:
                print(f"  - {item.name} ({item.amount})")
    elif command == "history":
        rows = history_records(service.journal.meals(user_id))
        if not rows:
            print("Nothing logged yet.")
        for row in rows:
            print(
                f"  {row['date']}: {round(row['calories'])} kcal | P {round(row['protein'])}g "
                f"C {round(row['carbs'])}g F {round(row['fats'])}g"
            )
    elif command == "chat":
        print(f"\nCoach: {service.coach_chat(user_id, input('You: '))}\n")


def session_loop(service: ProtocolService, account: UserAccount) -> None:
    print(f"\n=== AuraFit: {account.email} ===")
    while True:
        print("Commands:")
        for name, description in COMMANDS.items():
            print(f"  {name:<12} -> {description}")
        command = input("> ").strip().lower()
        if command in {"quit", "q", "exit"}:
            print("Exiting. Bye!\n")
            break
        if command not in COMMANDS:
            print("Invalid choice, please try again.\n")
            continue
        try:
            run_command(service, account, command)
        except (AuraFitError, ValueError, IndexError) as exc:
            logger.debug("Command %s failed", command, exc_info=True)
            print(f"Could not {COMMANDS[command]}: {exc}\n")


def main():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    service = ProtocolService(JsonFileStore(settings.data_dir), CoachClient.from_settings(settings))
    while True:
        try:
            account = authenticate(service)
        except AuraFitError as exc:
            print(f"{exc}\n")
            continue
        if account is None:
            print("Exiting. Bye!\n")
            break
        session_loop(service, account)


if __name__ == "__main__":
    main()
