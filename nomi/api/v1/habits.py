"""
Habits API endpoints
"""
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from nomi.api.deps import get_db, get_current_user_id
from nomi.infrastructure.db.models import HabitModel
from nomi.application.habits import (
    CreateHabitUseCase, UpdateHabitUseCase, UpsertHabitEntryUseCase,
    HabitValidationError, HabitNotFoundError,
)


router = APIRouter(prefix="/api/v1/habits", tags=["habits"])


class CreateHabitRequest(BaseModel):
    title: str
    schedule: dict[str, Any] | None = None
    category: str | None = None


class UpdateHabitRequest(BaseModel):
    title: str | None = None
    schedule: dict[str, Any] | None = None
    category: str | None = None
    active: bool | None = None


class HabitResponse(BaseModel):
    id: str
    title: str
    schedule: dict[str, Any]
    category: str | None
    active: bool


class HabitEntryRequest(BaseModel):
    date: date
    status: str
    note: str | None = None


class HabitEntryResponse(BaseModel):
    habit_id: str
    date: date
    status: str
    note: str | None


def _habit_response(habit: HabitModel) -> HabitResponse:
    return HabitResponse(
        id=habit.id,
        title=habit.title,
        schedule=habit.schedule or {},
        category=habit.category,
        active=habit.active,
    )


@router.post("", response_model=HabitResponse)
def create_habit(
    req: CreateHabitRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        habit_id = CreateHabitUseCase(db).execute(
            owner_id=user_id, title=req.title,
            schedule=req.schedule, category=req.category,
        )
    except HabitValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    habit = db.query(HabitModel).filter(HabitModel.id == habit_id).first()
    return _habit_response(habit)


@router.patch("/{habit_id}", response_model=HabitResponse)
def update_habit(
    habit_id: str,
    req: UpdateHabitRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        habit = UpdateHabitUseCase(db).execute(user_id, habit_id, **req.model_dump(exclude_unset=True))
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HabitValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _habit_response(habit)


@router.post("/{habit_id}/entries", response_model=HabitEntryResponse)
def upsert_entry(
    habit_id: str,
    req: HabitEntryRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Mark a habit done/skipped/missed for one day (replaces an earlier mark)"""
    try:
        entry = UpsertHabitEntryUseCase(db).execute(user_id, habit_id, req.date, req.status, req.note)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HabitValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return HabitEntryResponse(habit_id=entry.habit_id, date=entry.date, status=entry.status, note=entry.note)
