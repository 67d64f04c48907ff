"""
Timeline aggregation: day view, multi-day range and weekly insights.

Pure read-layer: no mutations. Every composition is a fixed number of
owner-scoped store reads (items, shared events, one detail lookup per kind
present, habits, habit entries) followed by in-memory bucketing into days,
so a range costs the same number of round trips as a single day.

The reads are independent statements, not one snapshot: a write landing
between the item fetch and the detail fetch may show through. That read
skew is accepted for single-user timelines.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from nomi.config import Settings, get_settings
from nomi.domain.timeline_item import (
    KIND_BILL, KIND_EVENT, KIND_HABIT_BLOCK,
    as_utc, parse_day, range_window, item_day, is_undated, effective_time,
)
from nomi.domain.habit_block import parse_schedule, expand_habit
from nomi.infrastructure.db.models import TimelineItemModel
from nomi.infrastructure.timeline.repository import TimelineRepository
from nomi.application.detail_batcher import DetailBatcher, partition_ids, attach_details
from nomi.application.shared_events import merge_shared_events

logger = logging.getLogger(__name__)


class TimelineValidationError(ValueError):
    pass


class TimelineItemNotFoundError(TimelineValidationError):
    pass


def _parse(value: str) -> date:
    try:
        return parse_day(value)
    except (TypeError, ValueError):
        raise TimelineValidationError(f"Invalid date: {value!r}")


def base_item(row: TimelineItemModel) -> dict[str, Any]:
    return {
        "id": row.id,
        "kind": row.kind,
        "start_at": as_utc(row.start_at),
        "end_at": as_utc(row.end_at),
        "title": row.title,
        "summary": row.summary,
        "status": row.status,
        "metadata": dict(row.meta or {}),
        "life_area": row.life_area,
        "priority": row.priority,
    }


class TimelineService:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.repo = TimelineRepository(db)
        self.batcher = DetailBatcher(self.repo)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_day(self, owner_id: str, day: str) -> dict:
        """DayView {date, items, highlights} for one calendar day."""
        d = _parse(day)
        return self._compose(owner_id, [d])[d]

    def get_range(self, owner_id: str, start: str, end: str) -> dict:
        """
        {"dates": {date: DayView}} for start..end inclusive.

        The span is capped at TIMELINE_RANGE_MAX_DAYS from ``start``; a start
        after ``end`` gives an empty map.
        """
        first = _parse(start)
        last = _parse(end)
        cap = max(1, self.settings.TIMELINE_RANGE_MAX_DAYS)
        days: list[date] = []
        for i in range(cap):
            d = first + timedelta(days=i)
            if d > last:
                break
            days.append(d)
        if not days:
            return {"dates": {}}

        views = self._compose(owner_id, days)
        return {"dates": {d.isoformat(): views[d] for d in days}}

    def get_weekly_insights(self, owner_id: str, today: date | None = None) -> dict:
        """
        Counters over the trailing INSIGHTS_WINDOW_DAYS days ending ``today``.

        Events count on the day they start; bills add their amount (null is 0)
        on their due date. A day is active when an event or bill lands on it.
        """
        if today is None:
            today = datetime.now(timezone.utc).date()
        first = today - timedelta(days=max(1, self.settings.INSIGHTS_WINDOW_DAYS) - 1)
        start, end = range_window(first, today)

        rows = self.repo.fetch_items_for_owner_in_window(owner_id, start, end)
        events = self.repo.fetch_detail_records_by_ids(
            KIND_EVENT, [r.id for r in rows if r.kind == KIND_EVENT],
        )
        bills = self.repo.fetch_detail_records_by_ids(
            KIND_BILL, [r.id for r in rows if r.kind == KIND_BILL],
        )

        active_days: set[date] = set()
        events_count = 0
        social_events_count = 0
        bills_total = Decimal("0")

        for r in rows:
            start_at = as_utc(r.start_at)
            if r.kind == KIND_EVENT and r.id in events:
                if start_at is None:
                    continue
                events_count += 1
                if events[r.id].visibility == "shared":
                    social_events_count += 1
                active_days.add(start_at.date())
            elif r.kind == KIND_BILL and r.id in bills:
                due = bills[r.id].due_date
                if due is None or not (first <= due <= today):
                    continue
                if start_at is not None and start_at.date() != due:
                    continue
                bills_total += bills[r.id].amount or Decimal("0")
                active_days.add(due)

        return {
            "period": {"start": first.isoformat(), "end": today.isoformat()},
            "active_days_count": len(active_days),
            "events_count": events_count,
            "social_events_count": social_events_count,
            "bills_total": bills_total,
        }

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _compose(self, owner_id: str, days: list[date]) -> dict[date, dict]:
        first, last = days[0], days[-1]
        start, end = range_window(first, last)

        items = [base_item(r) for r in self.repo.fetch_items_for_owner_in_window(owner_id, start, end)]
        seen_ids = {it["id"] for it in items}
        items.extend(merge_shared_events(self.repo, owner_id, start, end, seen_ids))

        details = self.batcher.fetch(partition_ids(items))
        for it in items:
            attach_details(it, details.get(it["kind"], {}).get(it["id"]))

        buckets: dict[date, list[dict]] = {d: [] for d in days}
        for it in items:
            if is_undated(it):
                for d in days:
                    buckets[d].append(it)
                continue
            d = item_day(it)
            if d in buckets:
                buckets[d].append(it)

        habit_blocks = self._expand_habits(owner_id, days)

        default_time = self.settings.ANCHORED_DEFAULT_TIME
        views: dict[date, dict] = {}
        for d in days:
            merged = buckets[d] + habit_blocks[d]
            merged.sort(key=lambda it: effective_time(it, default_time))
            views[d] = {
                "date": d.isoformat(),
                "items": merged,
                "highlights": _highlights(merged),
            }

        logger.debug(
            "Timeline for %s %s..%s: %d base item(s), %d habit block(s)",
            owner_id, first, last, len(items), sum(len(v) for v in habit_blocks.values()),
        )
        return views

    def _expand_habits(self, owner_id: str, days: list[date]) -> dict[date, list[dict]]:
        blocks: dict[date, list[dict]] = {d: [] for d in days}
        habits = self.repo.fetch_active_habits(owner_id)
        if not habits:
            return blocks

        first, last = days[0], days[-1]
        if first == last:
            entries = {
                (habit_id, first): e
                for habit_id, e in self.repo.fetch_habit_entries(owner_id, first).items()
            }
        else:
            entries = self.repo.fetch_habit_entries_between(owner_id, first, last)

        default_time = self.settings.HABIT_DEFAULT_TIME
        for h in habits:
            schedule = parse_schedule(h.schedule, default_time)
            for d in days:
                entry = entries.get((h.id, d))
                block = expand_habit(h.id, h.title, schedule, entry.status if entry else None, d)
                if block is not None:
                    blocks[d].append(block)
        return blocks


def _highlights(items: list[dict]) -> dict:
    habits = [it for it in items if it["kind"] == KIND_HABIT_BLOCK]
    bills_due = sum(
        (it.get("amount") or Decimal("0") for it in items if it["kind"] == KIND_BILL),
        Decimal("0"),
    )
    return {
        "item_count": len(items),
        "habit_count": len(habits),
        "habits_done": sum(1 for it in habits if it["entry_status"] == "done"),
        "bills_due_total": bills_due,
    }
