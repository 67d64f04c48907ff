"""
Timeline API endpoints
"""
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from nomi.api.deps import get_db, get_current_user_id
from nomi.infrastructure.db.models import TimelineItemModel
from nomi.application.timeline import TimelineService, TimelineValidationError, TimelineItemNotFoundError
from nomi.application.timeline_items import CreateTimelineItemUseCase, UpdateTimelineItemUseCase


router = APIRouter(prefix="/api/v1/timeline", tags=["timeline"])


# === Request/Response models ===

class DayViewResponse(BaseModel):
    date: str
    items: list[dict[str, Any]]
    highlights: dict[str, Any]


class RangeViewResponse(BaseModel):
    dates: dict[str, DayViewResponse]


class PeriodResponse(BaseModel):
    start: str
    end: str


class WeeklyInsightsResponse(BaseModel):
    period: PeriodResponse
    active_days_count: int
    events_count: int
    social_events_count: int
    bills_total: str  # Decimal as string


class CreateTimelineItemRequest(BaseModel):
    kind: str
    title: str
    start_at: datetime | None = None
    end_at: datetime | None = None
    summary: str | None = None
    status: str = "scheduled"
    metadata: dict[str, Any] = {}
    life_area: str | None = None
    priority: str | None = None
    detail: dict[str, Any] = {}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be empty")
        return v


class UpdateTimelineItemRequest(BaseModel):
    start_at: datetime | None = None
    end_at: datetime | None = None
    title: str | None = None
    summary: str | None = None
    status: str | None = None
    metadata: dict[str, Any] | None = None
    life_area: str | None = None
    priority: str | None = None
    detail: dict[str, Any] | None = None


class TimelineItemResponse(BaseModel):
    id: str
    kind: str
    start_at: datetime | None
    end_at: datetime | None
    title: str
    summary: str | None
    status: str
    metadata: dict[str, Any]


def _item_response(item) -> TimelineItemResponse:
    return TimelineItemResponse(
        id=item.id,
        kind=item.kind,
        start_at=item.start_at,
        end_at=item.end_at,
        title=item.title,
        summary=item.summary,
        status=item.status,
        metadata=item.meta or {},
    )


# === Endpoints ===

@router.get("/insights", response_model=WeeklyInsightsResponse)
def get_weekly_insights(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Trailing-week counters"""
    insights = TimelineService(db).get_weekly_insights(user_id)
    insights["bills_total"] = str(insights["bills_total"])
    return insights


@router.get("", response_model=DayViewResponse | RangeViewResponse)
def get_timeline(
    date: str | None = None,
    start: str | None = None,
    end: str | None = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Day view for ``date`` (default: today, UTC) or a range view for ``start``..``end``"""
    service = TimelineService(db)
    try:
        if start and end:
            return service.get_range(user_id, start, end)
        day = date or datetime.now(timezone.utc).date().isoformat()
        return service.get_day(user_id, day)
    except TimelineValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/item", response_model=TimelineItemResponse)
def create_item(
    req: CreateTimelineItemRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a timeline item together with its detail row"""
    try:
        item_id = CreateTimelineItemUseCase(db).execute(
            owner_id=user_id,
            kind=req.kind,
            title=req.title,
            start_at=req.start_at,
            end_at=req.end_at,
            summary=req.summary,
            status=req.status,
            metadata=req.metadata,
            life_area=req.life_area,
            priority=req.priority,
            detail=req.detail,
        )
    except TimelineValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    item = db.query(TimelineItemModel).filter(TimelineItemModel.id == item_id).first()
    if not item:
        raise HTTPException(status_code=500, detail="Timeline item creation failed")
    return _item_response(item)


@router.patch("/item/{item_id}", response_model=TimelineItemResponse)
def update_item(
    item_id: str,
    req: UpdateTimelineItemRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Partially update an item and/or its detail row"""
    changes = req.model_dump(exclude_unset=True)
    detail = changes.pop("detail", None)
    try:
        item = UpdateTimelineItemUseCase(db).execute(user_id, item_id, changes, detail)
    except TimelineItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TimelineValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _item_response(item)
