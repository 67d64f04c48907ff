"""
Habit occurrence expansion: turns a habit's weekly schedule into a synthetic,
never-persisted ``habit_block`` timeline item for one date.
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from nomi.domain.timeline_item import KIND_HABIT_BLOCK


ALL_DAYS = frozenset(range(7))  # 0=Sunday .. 6=Saturday
DEFAULT_TIME = "09:00"


@dataclass(frozen=True)
class HabitSchedule:
    days: frozenset[int]
    hour: int
    minute: int

    @property
    def time(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def parse_time(value: str) -> tuple[int, int]:
    """ "HH:MM" -> (hour, minute). A bare "HH" means minute 0."""
    parts = value.split(":")
    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 and parts[1] != "" else 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"invalid time: {value!r}")
    return hour, minute


def parse_schedule(raw: dict | None, default_time: str = DEFAULT_TIME) -> HabitSchedule:
    raw = raw or {}
    days = raw.get("days")
    day_set = frozenset(int(d) for d in days) if days else ALL_DAYS
    hour, minute = parse_time(raw.get("time") or default_time)
    return HabitSchedule(days=day_set, hour=hour, minute=minute)


def sunday_weekday(day: date) -> int:
    """Weekday with 0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def expand_habit(
    habit_id: str,
    title: str,
    schedule: HabitSchedule,
    entry_status: str | None,
    day: date,
) -> dict[str, Any] | None:
    """
    Occurrence of one habit on ``day`` or None when the weekday is not scheduled.

    The block lasts one hour. The end hour wraps modulo 24 without advancing
    the date, so a 23:30 habit ends at 00:30 of the same day (end < start).
    The id is the habit id on every day.
    """
    if sunday_weekday(day) not in schedule.days:
        return None

    start_at = datetime(day.year, day.month, day.day, schedule.hour, schedule.minute, tzinfo=timezone.utc)
    end_at = datetime(day.year, day.month, day.day, (schedule.hour + 1) % 24, schedule.minute, tzinfo=timezone.utc)
    return {
        "id": habit_id,
        "kind": KIND_HABIT_BLOCK,
        "start_at": start_at,
        "end_at": end_at,
        "title": title,
        "summary": None,
        "status": "scheduled",
        "entry_status": entry_status,
        "metadata": {"habit_id": habit_id},
        "life_area": None,
        "priority": None,
    }
