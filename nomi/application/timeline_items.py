"""
Timeline item write use cases.

A persisted item is two rows (base + kind detail). Both are written in one
transaction: either both commit or the session is rolled back and neither
exists.
"""
import logging
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from nomi.domain.timeline_item import (
    PERSISTED_KINDS, KIND_HABIT_BLOCK,
    KIND_BILL, KIND_SUBSCRIPTION, KIND_GOAL, KIND_REMINDER, KIND_TASK,
    KIND_JOURNAL, KIND_TRAVEL, KIND_EVENT,
    as_utc,
)
from nomi.domain.habit_block import parse_time
from nomi.infrastructure.db.models import TimelineItemModel
from nomi.infrastructure.timeline.repository import DETAIL_MODELS, detail_columns
from nomi.application.timeline import TimelineValidationError, TimelineItemNotFoundError
from nomi.application.events import register_host

logger = logging.getLogger(__name__)

BASE_FIELDS = ("start_at", "end_at", "title", "summary", "status", "metadata", "life_area", "priority")
_TASK_DAY_END = time(23, 59, 59, 999000)
_UNDATED_KINDS = (KIND_BILL, KIND_SUBSCRIPTION, KIND_GOAL)


def _new_item_id() -> str:
    return str(uuid.uuid4())


def _required_columns(kind: str) -> list[str]:
    table = DETAIL_MODELS[kind].__table__
    return [
        c.key for c in table.columns
        if c.key != "timeline_item_id" and not c.nullable
        and c.default is None and c.server_default is None
    ]


def _coerce(kind: str, name: str, value: Any) -> Any:
    """Coerce JSON-ish detail values to the column's Python type."""
    if value is None:
        return None
    python_type = DETAIL_MODELS[kind].__table__.columns[name].type.python_type
    try:
        if python_type is datetime:
            if isinstance(value, str):
                value = datetime.fromisoformat(value)
            return as_utc(value)
        if python_type is date:
            if isinstance(value, datetime):
                return value.date()
            return date.fromisoformat(value) if isinstance(value, str) else value
        if python_type is Decimal:
            return Decimal(str(value))
    except (TypeError, ValueError, InvalidOperation):
        raise TimelineValidationError(f"Invalid value for {kind}.{name}: {value!r}")
    return value


def _parse_instant(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            raise TimelineValidationError(f"Invalid timestamp: {value!r}")
    return as_utc(value)


def _validate_detail(kind: str, detail: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    allowed = set(detail_columns(kind))
    unknown = sorted(set(detail) - allowed)
    if unknown:
        raise TimelineValidationError(f"Unknown {kind} field(s): {', '.join(unknown)}")
    values = {name: _coerce(kind, name, v) for name, v in detail.items()}
    if not partial:
        missing = [name for name in _required_columns(kind) if values.get(name) is None]
        if missing:
            raise TimelineValidationError(f"Missing {kind} field(s): {', '.join(missing)}")
    return values


class CreateTimelineItemUseCase:
    """Creates the base row and its detail row as one committed unit."""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: str,
        kind: str,
        title: str,
        start_at: datetime | str | None = None,
        end_at: datetime | str | None = None,
        summary: str | None = None,
        status: str = "scheduled",
        metadata: dict | None = None,
        life_area: str | None = None,
        priority: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> str:
        if kind == KIND_HABIT_BLOCK:
            raise TimelineValidationError("habit_block items are derived from habits and cannot be stored")
        if kind not in PERSISTED_KINDS:
            raise TimelineValidationError(f"Unknown kind: {kind!r}")
        title = (title or "").strip()
        if not title:
            raise TimelineValidationError("Title must not be empty")

        detail = dict(detail or {})
        due_time = detail.pop("due_time", None) if kind == KIND_TASK else None
        values = _validate_detail(kind, detail)
        start_at = _parse_instant(start_at)
        end_at = _parse_instant(end_at)

        # Where the kind decides its own position on the timeline
        if kind in _UNDATED_KINDS:
            start_at = end_at = None
        elif kind == KIND_REMINDER:
            start_at = end_at = values["remind_at"]
        elif kind == KIND_TASK and values.get("due_date") is not None:
            if due_time:
                try:
                    hour, minute = parse_time(due_time)
                except ValueError:
                    raise TimelineValidationError(f"Invalid due_time: {due_time!r}")
                start_at = datetime.combine(values["due_date"], time(hour, minute), tzinfo=timezone.utc)
            else:
                start_at = datetime.combine(values["due_date"], _TASK_DAY_END, tzinfo=timezone.utc)
        elif kind == KIND_TRAVEL:
            start_at = start_at or values.get("departure_at")
            end_at = end_at or values.get("arrival_at")
        elif kind == KIND_JOURNAL and start_at is None:
            start_at = datetime.now(timezone.utc)

        if kind == KIND_JOURNAL and summary is None:
            summary = values["content"][:200]

        item_id = _new_item_id()
        try:
            self.db.add(TimelineItemModel(
                id=item_id, user_id=owner_id, kind=kind,
                start_at=start_at, end_at=end_at,
                title=title, summary=summary, status=status or "scheduled",
                meta=dict(metadata or {}), life_area=life_area, priority=priority,
            ))
            self.db.flush()
            self.db.add(DETAIL_MODELS[kind](timeline_item_id=item_id, **values))
            if kind == KIND_EVENT:
                register_host(self.db, item_id, owner_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Created %s item %s for %s", kind, item_id, owner_id)
        return item_id


class UpdateTimelineItemUseCase:
    """Patches base and detail fields of an owned item in one commit."""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: str,
        item_id: str,
        changes: dict[str, Any] | None = None,
        detail_changes: dict[str, Any] | None = None,
    ) -> TimelineItemModel:
        changes = dict(changes or {})
        detail_changes = dict(detail_changes or {})

        item = self.db.query(TimelineItemModel).filter(
            TimelineItemModel.id == item_id,
            TimelineItemModel.user_id == owner_id,
        ).first()
        if not item:
            raise TimelineItemNotFoundError(f"Timeline item {item_id} not found")

        unknown = sorted(set(changes) - set(BASE_FIELDS))
        if unknown:
            raise TimelineValidationError(f"Unknown field(s): {', '.join(unknown)}")
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise TimelineValidationError("Title must not be empty")
        for key in ("start_at", "end_at"):
            if key in changes:
                changes[key] = _parse_instant(changes[key])

        model = DETAIL_MODELS[item.kind]
        detail = None
        values: dict[str, Any] = {}
        if detail_changes:
            detail = self.db.query(model).filter(model.timeline_item_id == item_id).first()
            # A missing detail row is recreated, so it must be complete
            values = _validate_detail(item.kind, detail_changes, partial=detail is not None)

        try:
            for key, value in changes.items():
                setattr(item, "meta" if key == "metadata" else key, value)
            if detail_changes:
                if detail is None:
                    self.db.add(model(timeline_item_id=item_id, **values))
                else:
                    for key, value in values.items():
                        setattr(detail, key, value)
            item.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Updated %s item %s", item.kind, item_id)
        return item
