"""
Timeline store: owner-scoped reads over timeline items, detail rows, habits
and event participants.

Every method is a single round trip (two for participants, which also
resolve profiles). Nothing is cached; callers see the store as it is now.
"""
from datetime import date, datetime
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from nomi.infrastructure.db.models import (
    TimelineItemModel,
    BillModel, EventModel, TaskModel, AppointmentModel, ReminderModel,
    SubscriptionModel, GoalModel, TravelModel, JournalModel, WorkBlockModel,
    HabitModel, HabitEntryModel,
    EventParticipantModel, ProfileModel,
)


DETAIL_MODELS = {
    "bill": BillModel,
    "event": EventModel,
    "task": TaskModel,
    "appointment": AppointmentModel,
    "reminder": ReminderModel,
    "subscription": SubscriptionModel,
    "goal": GoalModel,
    "travel": TravelModel,
    "journal": JournalModel,
    "work_block": WorkBlockModel,
}


def detail_columns(kind: str) -> list[str]:
    """Kind-specific column names (without the timeline_item_id key)."""
    model = DETAIL_MODELS[kind]
    return [c.key for c in model.__table__.columns if c.key != "timeline_item_id"]


def detail_to_dict(kind: str, detail: Any) -> dict[str, Any]:
    return {name: getattr(detail, name) for name in detail_columns(kind)}


class TimelineRepository:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Timeline items
    # ------------------------------------------------------------------

    def fetch_items_for_owner_in_window(
        self, owner_id: str, start: datetime, end: datetime,
    ) -> list[TimelineItemModel]:
        """Owned items starting inside [start, end], plus every null-start item."""
        return self.db.query(TimelineItemModel).filter(
            TimelineItemModel.user_id == owner_id,
            or_(
                and_(TimelineItemModel.start_at >= start, TimelineItemModel.start_at <= end),
                TimelineItemModel.start_at == None,  # noqa: E711
            ),
        ).order_by(
            TimelineItemModel.start_at.asc().nullsfirst(),
            TimelineItemModel.id,
        ).all()

    def fetch_detail_records_by_ids(self, kind: str, ids: list[str]) -> dict[str, Any]:
        if not ids:
            return {}
        model = DETAIL_MODELS[kind]
        rows = self.db.query(model).filter(model.timeline_item_id.in_(ids)).all()
        return {r.timeline_item_id: r for r in rows}

    def fetch_event_participants(self, event_ids: list[str]) -> dict[str, list[dict]]:
        """event_id -> [{"email", "display_name"}] in insertion order."""
        if not event_ids:
            return {}
        parts = self.db.query(EventParticipantModel).filter(
            EventParticipantModel.event_id.in_(event_ids),
        ).order_by(EventParticipantModel.id).all()
        if not parts:
            return {}

        user_ids = sorted({p.user_id for p in parts if p.user_id})
        profiles: dict[str, ProfileModel] = {}
        if user_ids:
            for pr in self.db.query(ProfileModel).filter(ProfileModel.user_id.in_(user_ids)).all():
                profiles[pr.user_id] = pr

        by_event: dict[str, list[dict]] = {}
        for p in parts:
            prof = profiles.get(p.user_id) if p.user_id else None
            by_event.setdefault(p.event_id, []).append({
                "email": p.invited_email or (prof.email if prof else None),
                "display_name": prof.display_name if prof else None,
            })
        return by_event

    def fetch_accepted_shared_events(self, owner_id: str) -> list[dict]:
        """Shared events owned by someone else that ``owner_id`` has accepted."""
        rows = self.db.query(TimelineItemModel, EventModel).join(
            EventModel, EventModel.timeline_item_id == TimelineItemModel.id,
        ).join(
            EventParticipantModel, EventParticipantModel.event_id == TimelineItemModel.id,
        ).filter(
            EventParticipantModel.user_id == owner_id,
            EventParticipantModel.rsvp_status == "accepted",
            EventModel.visibility == "shared",
            TimelineItemModel.user_id != owner_id,
        ).order_by(TimelineItemModel.start_at, TimelineItemModel.id).all()

        return [
            {
                "id": ti.id,
                "title": ti.title,
                "start_at": ti.start_at,
                "end_at": ti.end_at,
                "location": ev.location,
                "visibility": ev.visibility,
                "status": ti.status,
            }
            for ti, ev in rows
        ]

    # ------------------------------------------------------------------
    # Habits
    # ------------------------------------------------------------------

    def fetch_active_habits(self, owner_id: str) -> list[HabitModel]:
        return self.db.query(HabitModel).filter(
            HabitModel.user_id == owner_id,
            HabitModel.active == True,  # noqa: E712
        ).order_by(HabitModel.created_at, HabitModel.id).all()

    def fetch_habit_entries(self, owner_id: str, day: date) -> dict[str, HabitEntryModel]:
        rows = self.db.query(HabitEntryModel).filter(
            HabitEntryModel.user_id == owner_id,
            HabitEntryModel.date == day,
        ).all()
        return {e.habit_id: e for e in rows}

    def fetch_habit_entries_between(
        self, owner_id: str, first: date, last: date,
    ) -> dict[tuple[str, date], HabitEntryModel]:
        rows = self.db.query(HabitEntryModel).filter(
            HabitEntryModel.user_id == owner_id,
            HabitEntryModel.date >= first,
            HabitEntryModel.date <= last,
        ).all()
        return {(e.habit_id, e.date): e for e in rows}
