"""Habit use cases: create, update, per-day entries"""
import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from nomi.domain.habit_block import parse_time
from nomi.infrastructure.db.models import HabitModel, HabitEntryModel

logger = logging.getLogger(__name__)

HABIT_CATEGORIES = ("mind", "work", "health")
ENTRY_STATUSES = ("done", "skipped", "missed")


class HabitValidationError(ValueError):
    pass


class HabitNotFoundError(HabitValidationError):
    pass


def validate_schedule(raw: dict | None) -> dict[str, Any]:
    """
    Normalize {"days": [0..6], "time": "HH:MM"}; keys left out stay out so
    the defaults (every day, 09:00) apply when the habit is expanded.
    """
    raw = raw or {}
    unknown = set(raw) - {"days", "time"}
    if unknown:
        raise HabitValidationError(f"Unknown schedule field(s): {', '.join(sorted(unknown))}")

    out: dict[str, Any] = {}
    if raw.get("days") is not None:
        try:
            days = sorted({int(d) for d in raw["days"]})
        except (TypeError, ValueError):
            raise HabitValidationError("Schedule days must be integers 0..6")
        if any(d < 0 or d > 6 for d in days):
            raise HabitValidationError("Schedule days must be integers 0..6")
        out["days"] = days
    if raw.get("time") is not None:
        try:
            hour, minute = parse_time(str(raw["time"]))
        except ValueError:
            raise HabitValidationError(f"Invalid schedule time: {raw['time']!r}")
        out["time"] = f"{hour:02d}:{minute:02d}"
    return out


def _validate_category(category: str | None) -> None:
    if category is not None and category not in HABIT_CATEGORIES:
        raise HabitValidationError(f"Unknown category: {category!r}")


def _get_owned(db: Session, owner_id: str, habit_id: str) -> HabitModel:
    habit = db.query(HabitModel).filter(
        HabitModel.id == habit_id,
        HabitModel.user_id == owner_id,
    ).first()
    if not habit:
        raise HabitNotFoundError(f"Habit {habit_id} not found")
    return habit


class CreateHabitUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: str,
        title: str,
        schedule: dict | None = None,
        category: str | None = None,
    ) -> str:
        title = (title or "").strip()
        if not title:
            raise HabitValidationError("Habit title must not be empty")
        _validate_category(category)

        habit = HabitModel(
            user_id=owner_id, title=title,
            schedule=validate_schedule(schedule), category=category, active=True,
        )
        self.db.add(habit)
        self.db.commit()
        logger.info("Created habit %s for %s", habit.id, owner_id)
        return habit.id


class UpdateHabitUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: str, habit_id: str, **changes) -> HabitModel:
        habit = _get_owned(self.db, owner_id, habit_id)

        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                raise HabitValidationError("Habit title must not be empty")
            habit.title = title
        if "schedule" in changes:
            habit.schedule = validate_schedule(changes["schedule"])
        if "category" in changes:
            _validate_category(changes["category"])
            habit.category = changes["category"]
        if "active" in changes:
            habit.active = bool(changes["active"])

        self.db.commit()
        return habit


class UpsertHabitEntryUseCase:
    """At most one entry per habit per day; a second write replaces it."""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: str,
        habit_id: str,
        day: date | str,
        status: str,
        note: str | None = None,
    ) -> HabitEntryModel:
        _get_owned(self.db, owner_id, habit_id)
        if status not in ENTRY_STATUSES:
            raise HabitValidationError(f"Invalid entry status: {status!r}")
        if isinstance(day, str):
            try:
                day = date.fromisoformat(day)
            except ValueError:
                raise HabitValidationError(f"Invalid date: {day!r}")

        entry = self.db.query(HabitEntryModel).filter(
            HabitEntryModel.habit_id == habit_id,
            HabitEntryModel.user_id == owner_id,
            HabitEntryModel.date == day,
        ).first()
        if entry is None:
            entry = HabitEntryModel(habit_id=habit_id, user_id=owner_id, date=day)
            self.db.add(entry)
        entry.status = status
        entry.note = note
        self.db.commit()
        return entry
