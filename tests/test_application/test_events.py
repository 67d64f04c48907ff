"""
Tests for event invitations and RSVP
"""
import pytest
from datetime import datetime, timezone

from nomi.application.events import (
    InviteParticipantUseCase, RespondToInviteUseCase,
    EventValidationError, EventNotFoundError,
)
from nomi.application.timeline import TimelineService
from nomi.application.timeline_items import CreateTimelineItemUseCase
from nomi.infrastructure.db.models import EventParticipantModel, ProfileModel


@pytest.fixture
def dinner_id(db_session, other_user_id, profiles):
    """Bob hosts a shared dinner"""
    return CreateTimelineItemUseCase(db_session).execute(
        owner_id=other_user_id, kind="event", title="Dinner at Bob's",
        start_at=datetime(2024, 5, 3, 19, tzinfo=timezone.utc),
        detail={"visibility": "shared", "location": "Bob's"},
    )


def test_invite_registered_user(db_session, dinner_id, owner_id, other_user_id):
    participant_id = InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, " Ann@Example.com ")

    p = db_session.query(EventParticipantModel).filter(EventParticipantModel.id == participant_id).one()
    assert (p.user_id, p.invited_email, p.role, p.rsvp_status) == (owner_id, "ann@example.com", "guest", "pending")


def test_invite_unknown_email(db_session, dinner_id, other_user_id):
    participant_id = InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "carol@example.com")

    p = db_session.query(EventParticipantModel).filter(EventParticipantModel.id == participant_id).one()
    assert p.user_id is None


def test_invite_twice(db_session, dinner_id, other_user_id):
    InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "ann@example.com")
    with pytest.raises(EventValidationError):
        InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "ANN@example.com")


def test_host_cannot_invite_self(db_session, dinner_id, other_user_id):
    with pytest.raises(EventValidationError):
        InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "bob@example.com")


def test_only_host_can_invite(db_session, dinner_id, owner_id):
    with pytest.raises(EventNotFoundError):
        InviteParticipantUseCase(db_session).execute(owner_id, dinner_id, "carol@example.com")


def test_invalid_email(db_session, dinner_id, other_user_id):
    with pytest.raises(EventValidationError):
        InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "carol")


def test_accepting_puts_event_on_timeline(db_session, dinner_id, owner_id, other_user_id, settings):
    service = TimelineService(db_session, settings)
    InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "ann@example.com")
    assert service.get_day(owner_id, "2024-05-03")["items"] == []

    RespondToInviteUseCase(db_session).execute(owner_id, dinner_id, "accepted")

    items = service.get_day(owner_id, "2024-05-03")["items"]
    assert [it["id"] for it in items] == [dinner_id]
    assert items[0]["metadata"]["source"] == "shared"
    assert items[0]["metadata"]["participant_count"] == 2


def test_declining_keeps_timeline_clear(db_session, dinner_id, owner_id, other_user_id, settings):
    InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "ann@example.com")
    RespondToInviteUseCase(db_session).execute(owner_id, dinner_id, "declined")

    assert TimelineService(db_session, settings).get_day(owner_id, "2024-05-03")["items"] == []


def test_rsvp_matches_email_invite(db_session, dinner_id, other_user_id):
    InviteParticipantUseCase(db_session).execute(other_user_id, dinner_id, "carol@example.com")
    db_session.add(ProfileModel(user_id="user-c", email="carol@example.com"))
    db_session.commit()

    assert RespondToInviteUseCase(db_session).execute("user-c", dinner_id, "accepted") == "accepted"
    p = db_session.query(EventParticipantModel).filter(EventParticipantModel.invited_email == "carol@example.com").one()
    assert p.user_id == "user-c"


def test_rsvp_without_invite(db_session, dinner_id, owner_id):
    with pytest.raises(EventNotFoundError):
        RespondToInviteUseCase(db_session).execute(owner_id, dinner_id, "accepted")


def test_host_cannot_rsvp(db_session, dinner_id, other_user_id):
    with pytest.raises(EventValidationError):
        RespondToInviteUseCase(db_session).execute(other_user_id, dinner_id, "declined")


def test_invalid_rsvp_status(db_session, dinner_id, owner_id):
    with pytest.raises(EventValidationError):
        RespondToInviteUseCase(db_session).execute(owner_id, dinner_id, "maybe")
