"""
SQLAlchemy ORM models: timeline items, their kind-specific detail rows,
habits and event sharing.
"""
import uuid
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, SmallInteger, Text, TIMESTAMP, Date, func, Boolean, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from nomi.infrastructure.db.session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class ProfileModel(Base):
    """User profile (identity is owned by the external auth provider)"""
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


# ============================================================================
# Timeline
# ============================================================================


class TimelineItemModel(Base):
    """
    Canonical schedulable entity shared by every kind.

    Each persisted kind has exactly one detail row keyed by this id.
    """
    __tablename__ = "timeline_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)

    start_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    end_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="scheduled", default="scheduled")
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)
    life_area: Mapped[str | None] = mapped_column(String(32), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_timeline_items_user_start', 'user_id', 'start_at'),
    )


class BillModel(Base):
    """Detail: bill"""
    __tablename__ = "bills"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    vendor: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(precision=14, scale=2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    due_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    recurrence: Mapped[str | None] = mapped_column(String(32), nullable=True)
    autopay: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false", default=False)


class EventModel(Base):
    """Detail: calendar event"""
    __tablename__ = "events"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    visibility: Mapped[str] = mapped_column(String(16), nullable=False, server_default="private", default="private")  # private | shared
    recurrence_rule_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class TaskModel(Base):
    """Detail: task"""
    __tablename__ = "tasks"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    due_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, server_default="normal", default="normal")
    completed_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    life_area: Mapped[str | None] = mapped_column(String(32), nullable=True)


class AppointmentModel(Base):
    """Detail: appointment"""
    __tablename__ = "appointments"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    with_whom: Mapped[str | None] = mapped_column(String(255), nullable=True)


class ReminderModel(Base):
    """Detail: reminder"""
    __tablename__ = "reminders"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    remind_at: Mapped[DateTime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    recurrence: Mapped[str] = mapped_column(String(16), nullable=False, server_default="once", default="once")


class SubscriptionModel(Base):
    """Detail: recurring subscription"""
    __tablename__ = "subscriptions"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    vendor: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(precision=14, scale=2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    billing_cycle: Mapped[str] = mapped_column(String(16), nullable=False)  # weekly | monthly | yearly
    next_bill_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    autopay: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false", default=False)


class GoalModel(Base):
    """Detail: goal"""
    __tablename__ = "goals"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    target_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    life_area: Mapped[str | None] = mapped_column(String(32), nullable=True)
    progress: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="0", default=0)


class TravelModel(Base):
    """Detail: travel"""
    __tablename__ = "travel"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    origin: Mapped[str | None] = mapped_column(String(255), nullable=True)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    departure_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    arrival_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)


class JournalModel(Base):
    """Detail: journal note"""
    __tablename__ = "journals"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    mood: Mapped[str | None] = mapped_column(String(32), nullable=True)


class WorkBlockModel(Base):
    """Detail: focused work block"""
    __tablename__ = "work_blocks"

    timeline_item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project: Mapped[str | None] = mapped_column(String(255), nullable=True)


# ============================================================================
# Habits
# ============================================================================


class HabitModel(Base):
    """Habit with a weekly schedule: {"days": [0..6], "time": "HH:MM"}"""
    __tablename__ = "habits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    schedule: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true", default=True)
    category: Mapped[str | None] = mapped_column(String(16), nullable=True)  # mind | work | health

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class HabitEntryModel(Base):
    """Per-day completion mark of a habit"""
    __tablename__ = "habit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    habit_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)  # done | skipped | missed
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('habit_id', 'user_id', 'date', name='uq_habit_entry'),
        Index('ix_habit_entries_user_date', 'user_id', 'date'),
    )


# ============================================================================
# Event sharing
# ============================================================================


class EventParticipantModel(Base):
    """Participant of an event (registered user or e-mail invitee)"""
    __tablename__ = "event_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)  # -> events.timeline_item_id
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    invited_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="guest", default="guest")  # host | guest
    rsvp_status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending", default="pending")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
