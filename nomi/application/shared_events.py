"""Shared-event merging: accepted invitations to other users' events."""
from datetime import datetime

from nomi.domain.timeline_item import KIND_EVENT, as_utc
from nomi.infrastructure.timeline.repository import TimelineRepository


def merge_shared_events(
    repo: TimelineRepository,
    owner_id: str,
    start: datetime,
    end: datetime,
    seen_ids: set[str],
) -> list[dict]:
    """
    Base items for shared-accepted events starting inside [start, end].

    Ids already in ``seen_ids`` are skipped and every returned id is added
    to it, so an event surfaced by both the owned and the shared path is
    merged exactly once.
    """
    out: list[dict] = []
    for ev in repo.fetch_accepted_shared_events(owner_id):
        ev_start = as_utc(ev["start_at"])
        if ev_start is None or ev_start < start or ev_start > end:
            continue
        if ev["id"] in seen_ids:
            continue
        seen_ids.add(ev["id"])
        out.append({
            "id": ev["id"],
            "kind": KIND_EVENT,
            "start_at": ev_start,
            "end_at": as_utc(ev["end_at"]),
            "title": ev["title"] or "",
            "summary": None,
            "status": ev["status"] or "scheduled",
            "metadata": {"source": "shared"},
            "life_area": None,
            "priority": None,
        })
    return out
