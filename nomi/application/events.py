"""Event sharing use cases: host registration, invitations, RSVP"""
import logging

from sqlalchemy.orm import Session

from nomi.infrastructure.db.models import TimelineItemModel, EventParticipantModel, ProfileModel

logger = logging.getLogger(__name__)

RSVP_STATUSES = ("accepted", "declined")


class EventValidationError(ValueError):
    pass


class EventNotFoundError(EventValidationError):
    pass


def register_host(db: Session, event_id: str, owner_id: str) -> None:
    """The creator of an event is its accepted host. Caller commits."""
    db.add(EventParticipantModel(
        event_id=event_id, user_id=owner_id,
        role="host", rsvp_status="accepted",
    ))


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise EventValidationError(f"Invalid e-mail: {email!r}")
    return email


class InviteParticipantUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, host_id: str, event_id: str, email: str) -> int:
        event = self.db.query(TimelineItemModel).filter(
            TimelineItemModel.id == event_id,
            TimelineItemModel.user_id == host_id,
            TimelineItemModel.kind == "event",
        ).first()
        if not event:
            raise EventNotFoundError(f"Event {event_id} not found")

        norm = _normalize_email(email)
        invitee = self.db.query(ProfileModel).filter(ProfileModel.email == norm).first()
        invitee_id = invitee.user_id if invitee else None
        if invitee_id == host_id:
            raise EventValidationError("Host cannot invite themselves")

        existing = self.db.query(EventParticipantModel).filter(
            EventParticipantModel.event_id == event_id,
        ).all()
        for p in existing:
            if p.invited_email == norm or (invitee_id and p.user_id == invitee_id):
                raise EventValidationError(f"{norm} is already invited")

        participant = EventParticipantModel(
            event_id=event_id, user_id=invitee_id, invited_email=norm,
            role="guest", rsvp_status="pending",
        )
        self.db.add(participant)
        self.db.commit()
        logger.info("Invited %s to event %s", norm, event_id)
        return participant.id


class RespondToInviteUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: str, event_id: str, status: str) -> str:
        if status not in RSVP_STATUSES:
            raise EventValidationError(f"Invalid RSVP status: {status!r}")

        participant = self.db.query(EventParticipantModel).filter(
            EventParticipantModel.event_id == event_id,
            EventParticipantModel.user_id == user_id,
        ).first()
        if participant is None:
            # Invited by e-mail before the account existed
            profile = self.db.query(ProfileModel).filter(ProfileModel.user_id == user_id).first()
            if profile:
                participant = self.db.query(EventParticipantModel).filter(
                    EventParticipantModel.event_id == event_id,
                    EventParticipantModel.invited_email == profile.email.strip().lower(),
                ).first()
        if participant is None:
            raise EventNotFoundError(f"No invitation to event {event_id}")
        if participant.role == "host":
            raise EventValidationError("Host cannot RSVP to their own event")

        participant.user_id = user_id
        participant.rsvp_status = status
        self.db.commit()
        logger.info("User %s %s event %s", user_id, status, event_id)
        return status
