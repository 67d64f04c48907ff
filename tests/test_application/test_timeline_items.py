"""
Tests for timeline item create/update use cases
"""
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import patch

from nomi.application.timeline import TimelineService, TimelineValidationError, TimelineItemNotFoundError
from nomi.application.timeline_items import CreateTimelineItemUseCase, UpdateTimelineItemUseCase
from nomi.infrastructure.db.models import (
    TimelineItemModel, BillModel, EventModel, TaskModel, ReminderModel, JournalModel, EventParticipantModel,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def _item(db_session, item_id):
    return db_session.query(TimelineItemModel).filter(TimelineItemModel.id == item_id).first()


class TestCreate:
    def test_bill_has_no_start(self, db_session, owner_id):
        item_id = CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="bill", title="Rent",
            start_at=utc(2024, 5, 3, 10),
            detail={"vendor": "Landlord", "amount": "900.50", "due_date": "2024-05-03"},
        )

        item = _item(db_session, item_id)
        assert item.start_at is None
        assert item.kind == "bill"
        bill = db_session.query(BillModel).filter(BillModel.timeline_item_id == item_id).one()
        assert bill.amount == Decimal("900.50")
        assert bill.due_date == date(2024, 5, 3)

    def test_event_registers_host(self, db_session, owner_id):
        item_id = CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="event", title="Dinner",
            start_at="2024-05-03T19:00:00+00:00", detail={"visibility": "shared"},
        )

        assert db_session.query(EventModel).filter(EventModel.timeline_item_id == item_id).one().visibility == "shared"
        host = db_session.query(EventParticipantModel).filter(EventParticipantModel.event_id == item_id).one()
        assert (host.user_id, host.role, host.rsvp_status) == (owner_id, "host", "accepted")

    def test_reminder_start_is_remind_at(self, db_session, owner_id):
        item_id = CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="reminder", title="Pills",
            detail={"remind_at": "2024-05-03T12:00:00+00:00"},
        )
        item = _item(db_session, item_id)
        assert item.start_at.replace(tzinfo=None) == datetime(2024, 5, 3, 12)
        assert db_session.query(ReminderModel).filter(ReminderModel.timeline_item_id == item_id).one().recurrence == "once"

    def test_task_due_time(self, db_session, owner_id):
        item_id = CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="task", title="Call mom",
            detail={"due_date": "2024-05-03", "due_time": "14:30"},
        )
        assert _item(db_session, item_id).start_at.replace(tzinfo=None) == datetime(2024, 5, 3, 14, 30)

    def test_task_without_time_ends_the_day(self, db_session, owner_id):
        item_id = CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="task", title="Report", detail={"due_date": "2024-05-03"},
        )
        assert _item(db_session, item_id).start_at.replace(tzinfo=None) == datetime(2024, 5, 3, 23, 59, 59, 999000)

    def test_journal_summary_from_content(self, db_session, owner_id):
        item_id = CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="journal", title="Today",
            start_at=utc(2024, 5, 3, 21), detail={"content": "x" * 300},
        )
        item = _item(db_session, item_id)
        assert item.summary == "x" * 200
        assert db_session.query(JournalModel).filter(JournalModel.timeline_item_id == item_id).one().content == "x" * 300

    def test_rejects_habit_block(self, db_session, owner_id):
        with pytest.raises(TimelineValidationError):
            CreateTimelineItemUseCase(db_session).execute(owner_id=owner_id, kind="habit_block", title="Run")

    def test_rejects_unknown_kind(self, db_session, owner_id):
        with pytest.raises(TimelineValidationError):
            CreateTimelineItemUseCase(db_session).execute(owner_id=owner_id, kind="party", title="Run")

    def test_rejects_blank_title(self, db_session, owner_id):
        with pytest.raises(TimelineValidationError):
            CreateTimelineItemUseCase(db_session).execute(owner_id=owner_id, kind="event", title="  ")

    def test_rejects_missing_required_detail(self, db_session, owner_id):
        with pytest.raises(TimelineValidationError, match="due_date"):
            CreateTimelineItemUseCase(db_session).execute(
                owner_id=owner_id, kind="bill", title="Rent", detail={"vendor": "Landlord"},
            )

    def test_rejects_unknown_detail_field(self, db_session, owner_id):
        with pytest.raises(TimelineValidationError, match="color"):
            CreateTimelineItemUseCase(db_session).execute(
                owner_id=owner_id, kind="event", title="Dinner", detail={"color": "red"},
            )

    def test_rejects_bad_amount(self, db_session, owner_id):
        with pytest.raises(TimelineValidationError):
            CreateTimelineItemUseCase(db_session).execute(
                owner_id=owner_id, kind="bill", title="Rent",
                detail={"vendor": "Landlord", "amount": "lots", "due_date": "2024-05-03"},
            )

    def test_failure_leaves_no_partial_item(self, db_session, owner_id):
        with patch("nomi.application.timeline_items.register_host", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                CreateTimelineItemUseCase(db_session).execute(
                    owner_id=owner_id, kind="event", title="Dinner", start_at=utc(2024, 5, 3, 19),
                )

        assert db_session.query(TimelineItemModel).count() == 0
        assert db_session.query(EventModel).count() == 0


class TestUpdate:
    @pytest.fixture
    def bill_id(self, db_session, owner_id):
        return CreateTimelineItemUseCase(db_session).execute(
            owner_id=owner_id, kind="bill", title="Rent",
            detail={"vendor": "Landlord", "amount": "900", "due_date": "2024-05-03"},
        )

    def test_base_and_detail(self, db_session, owner_id, bill_id):
        item = UpdateTimelineItemUseCase(db_session).execute(
            owner_id, bill_id, {"title": "Rent (May)", "metadata": {"note": "paid late"}},
            {"amount": "950"},
        )

        assert item.title == "Rent (May)"
        assert item.meta == {"note": "paid late"}
        bill = db_session.query(BillModel).filter(BillModel.timeline_item_id == bill_id).one()
        assert bill.amount == Decimal("950")
        assert bill.vendor == "Landlord"

    def test_not_found_for_other_owner(self, db_session, other_user_id, bill_id):
        with pytest.raises(TimelineItemNotFoundError):
            UpdateTimelineItemUseCase(db_session).execute(other_user_id, bill_id, {"title": "Mine"})

    def test_rejects_unknown_field(self, db_session, owner_id, bill_id):
        with pytest.raises(TimelineValidationError):
            UpdateTimelineItemUseCase(db_session).execute(owner_id, bill_id, {"kind": "event"})

    def test_missing_detail_is_recreated(self, db_session, owner_id, add_item):
        add_item("orphan", "task", "Orphan", start_at=utc(2024, 5, 3, 10))

        UpdateTimelineItemUseCase(db_session).execute(owner_id, "orphan", detail_changes={"due_date": "2024-05-03"})

        task = db_session.query(TaskModel).filter(TaskModel.timeline_item_id == "orphan").one()
        assert task.due_date == date(2024, 5, 3)
        assert task.priority == "normal"


def test_created_task_keeps_base_priority_in_day_view(db_session, owner_id, settings):
    CreateTimelineItemUseCase(db_session).execute(
        owner_id=owner_id, kind="task", title="Call mom",
        priority="high", life_area="family", detail={"due_date": "2024-05-03"},
    )

    item = TimelineService(db_session, settings).get_day(owner_id, "2024-05-03")["items"][0]

    assert (item["priority"], item["life_area"]) == ("high", "family")
