"""
Event sharing API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from nomi.api.deps import get_db, get_current_user_id
from nomi.application.events import (
    InviteParticipantUseCase, RespondToInviteUseCase,
    EventValidationError, EventNotFoundError,
)


router = APIRouter(prefix="/api/v1/events", tags=["events"])


class InviteRequest(BaseModel):
    email: str


class InviteResponse(BaseModel):
    participant_id: int
    email: str


class RsvpRequest(BaseModel):
    status: str


class RsvpResponse(BaseModel):
    event_id: str
    status: str


@router.post("/{event_id}/invites", response_model=InviteResponse)
def invite(
    event_id: str,
    req: InviteRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        participant_id = InviteParticipantUseCase(db).execute(user_id, event_id, req.email)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EventValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return InviteResponse(participant_id=participant_id, email=req.email.strip().lower())


@router.post("/{event_id}/rsvp", response_model=RsvpResponse)
def rsvp(
    event_id: str,
    req: RsvpRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Accept or decline an invitation; accepted shared events join the invitee's timeline"""
    try:
        status = RespondToInviteUseCase(db).execute(user_id, event_id, req.status)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EventValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RsvpResponse(event_id=event_id, status=status)
