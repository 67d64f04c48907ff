"""
Timeline item kinds, UTC day windows and ordering keys.

Pure helpers over composed item dicts; no I/O.
"""
from datetime import date, datetime, time, timezone


KIND_EVENT = "event"
KIND_BILL = "bill"
KIND_TASK = "task"
KIND_APPOINTMENT = "appointment"
KIND_REMINDER = "reminder"
KIND_SUBSCRIPTION = "subscription"
KIND_GOAL = "goal"
KIND_TRAVEL = "travel"
KIND_JOURNAL = "journal"
KIND_WORK_BLOCK = "work_block"
KIND_HABIT_BLOCK = "habit_block"

PERSISTED_KINDS = (
    KIND_EVENT, KIND_BILL, KIND_TASK, KIND_APPOINTMENT, KIND_REMINDER,
    KIND_SUBSCRIPTION, KIND_GOAL, KIND_TRAVEL, KIND_JOURNAL, KIND_WORK_BLOCK,
)

# Kinds that belong to a day through their own date field rather than start_at
ANCHOR_FIELDS = {
    KIND_BILL: "due_date",
    KIND_SUBSCRIPTION: "next_bill_date",
    KIND_TASK: "due_date",
    KIND_GOAL: "target_date",
}

_DAY_END = time(23, 59, 59, 999000)


def parse_day(value: str) -> date:
    """Parse a "YYYY-MM-DD" day string (a longer ISO prefix is tolerated)."""
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError(f"invalid date: {value!r}")
    return date.fromisoformat(value[:10])


def as_utc(dt: datetime | None) -> datetime | None:
    """Naive values coming back from the store are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_window(day: date) -> tuple[datetime, datetime]:
    """UTC window [dT00:00:00.000Z, dT23:59:59.999Z]."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, _DAY_END, tzinfo=timezone.utc)
    return start, end


def range_window(first: date, last: date) -> tuple[datetime, datetime]:
    return day_window(first)[0], day_window(last)[1]


def format_instant(dt: datetime) -> str:
    """Render as YYYY-MM-DDTHH:MM:SS.mmmZ (UTC, millisecond precision)."""
    dt = as_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def anchor_value(item: dict) -> date | None:
    field = ANCHOR_FIELDS.get(item["kind"])
    if field is None:
        return None
    value = item.get(field)
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def item_day(item: dict) -> date | None:
    """
    The single day an item is listed on, or None when it has no fixed day.

    Timed items belong to the UTC date of start_at, and anchored kinds that
    carry an anchor date only when it is that same date. Null-start items
    belong to their anchor date; without one they are undated (see
    is_undated) and are listed on every requested day.
    """
    anchor = anchor_value(item)
    start = item.get("start_at")
    if start is None:
        return anchor
    start_day = as_utc(start).date()
    if anchor is not None and anchor != start_day:
        return None
    return start_day


def is_undated(item: dict) -> bool:
    """No start_at and no anchor date, e.g. a bill whose detail row is missing."""
    return item.get("start_at") is None and anchor_value(item) is None


def effective_time(item: dict, anchored_default_time: str = "09:00") -> str:
    """
    Sort key of an item inside a day.

    reminder -> remind_at, else start_at, else anchor date at the default slot.
    Items without any of these get "" and therefore sort before timed items.
    """
    if item["kind"] == KIND_REMINDER and item.get("remind_at") is not None:
        return format_instant(item["remind_at"])
    if item.get("start_at") is not None:
        return format_instant(item["start_at"])
    anchor = anchor_value(item)
    if anchor is not None:
        return f"{anchor.isoformat()}T{anchored_default_time}:00.000Z"
    return ""
