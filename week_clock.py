from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List

DAYS: List[str] = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def week_start(moment: datetime) -> int:
    """
    Epoch milliseconds of local midnight on the Monday of the week containing `moment`.

    Sunday counts as day 7, so it belongs to the week that started six days earlier.
    Aware datetimes keep their tzinfo; naive ones are read as local time.
    """
    monday = moment.date() - timedelta(days=moment.weekday())
    start = datetime.combine(monday, time.min, tzinfo=moment.tzinfo)
    return int(start.timestamp() * 1000)


def day_name(moment: datetime | date) -> str:
    return DAYS[moment.weekday()]


def day_index(name: str) -> int:
    """Position of a weekday name in the Monday-first ordering (case-insensitive)."""
    return DAYS.index(normalize_day_name(name))


def normalize_day_name(name: str) -> str:
    key = str(name).strip().lower()
    for day in DAYS:
        if day.lower() == key:
            return day
    raise ValueError(f"Unknown weekday '{name}'")


def calendar_day(moment: datetime | date) -> date:
    if isinstance(moment, datetime):
        return moment.date()
    return moment
