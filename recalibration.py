from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from records import UserProfile, WeeklyWorkoutPlan
from week_clock import DAYS, day_index


@dataclass
class RecalibrationRequest:
    """Everything the collaborator needs to rebuild the rest of the week."""

    profile: UserProfile
    current_plan: WeeklyWorkoutPlan
    missed_days: List[str]
    remaining_days: List[str]
    full_body_next: bool
    instructions: List[str] = field(default_factory=list)

    def plan_payload(self) -> Dict[str, Any]:
        return {day: plan.model_dump(mode="json", by_alias=True) for day, plan in self.current_plan.items()}


def find_missed_days(
    weekly_plan: Optional[WeeklyWorkoutPlan],
    current_day_name: str,
    completed_plan_ids: Iterable[str] = (),
) -> List[str]:
    """
    Days strictly before `current_day_name` that had a plan which was not completed.

    Plans already journaled as completed (by id) are not counted as missed.
    """
    if not weekly_plan:
        return []
    done = set(completed_plan_ids)
    missed = []
    for day in DAYS[: day_index(current_day_name)]:
        plan = weekly_plan.get(day)
        if plan is None or plan.completed or plan.id in done:
            continue
        missed.append(day)
    return missed


def build_request(
    profile: UserProfile,
    current_plan: WeeklyWorkoutPlan,
    missed_days: List[str],
    current_day_name: str,
) -> RecalibrationRequest:
    remaining = DAYS[day_index(current_day_name):]
    full_body_next = len(missed_days) > 1
    instructions = [
        "Detect the volume debt left by the missed days.",
        "Redistribute the essential compound movements into the remaining days: "
        + ", ".join(remaining)
        + ".",
    ]
    if full_body_next:
        instructions.append(
            "Several days were missed: make the next active day a full-body, "
            "compound-movement session for systemic stimulus."
        )
    instructions.append(
        "Update each rationale to acknowledge the missed volume and how later days compensate."
    )
    instructions.append("Return all seven days, including the days already past.")
    return RecalibrationRequest(
        profile=profile,
        current_plan=current_plan,
        missed_days=list(missed_days),
        remaining_days=remaining,
        full_body_next=full_body_next,
        instructions=instructions,
    )


def recalibrate(
    profile: UserProfile,
    current_plan: WeeklyWorkoutPlan,
    missed_days: List[str],
    current_day_name: str,
    coach: Any,
) -> WeeklyWorkoutPlan:
    """
    Ask the collaborator for a full replacement week that absorbs the missed volume.

    Days before `current_day_name` keep their existing plans (ids and exercise
    progress), so sessions already journaled stay matched to their records.
    """
    request = build_request(profile, current_plan, missed_days, current_day_name)
    updated = dict(coach.recalibrate_plan(request))
    for day in DAYS[: day_index(current_day_name)]:
        if day in current_plan:
            updated[day] = current_plan[day]
    return {day: updated[day] for day in DAYS if day in updated}
