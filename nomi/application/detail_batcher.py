"""
Detail batching: one store lookup per kind present, never per item.
"""
import logging
from typing import Any

from nomi.infrastructure.timeline.repository import TimelineRepository, DETAIL_MODELS, detail_to_dict

logger = logging.getLogger(__name__)


def partition_ids(items: list[dict]) -> dict[str, list[str]]:
    """kind -> ids in first-seen order (duplicates dropped)."""
    by_kind: dict[str, list[str]] = {}
    seen: set[tuple[str, str]] = set()
    for it in items:
        key = (it["kind"], it["id"])
        if key in seen:
            continue
        seen.add(key)
        by_kind.setdefault(it["kind"], []).append(it["id"])
    return by_kind


class DetailBatcher:
    """
    Resolves kind-specific detail rows for a set of timeline item ids.

    Kinds with an empty id list, and kinds without a detail table
    (habit_block), never reach the store. Event details also carry their
    participant list, fetched in one extra batched lookup.
    """

    def __init__(self, repo: TimelineRepository):
        self.repo = repo

    def fetch(self, ids_by_kind: dict[str, list[str]]) -> dict[str, dict[str, dict[str, Any]]]:
        details: dict[str, dict[str, dict[str, Any]]] = {}
        for kind, ids in ids_by_kind.items():
            if not ids or kind not in DETAIL_MODELS:
                continue
            rows = self.repo.fetch_detail_records_by_ids(kind, ids)
            details[kind] = {item_id: detail_to_dict(kind, row) for item_id, row in rows.items()}

        event_details = details.get("event")
        if event_details:
            participants = self.repo.fetch_event_participants(list(event_details.keys()))
            for event_id, detail in event_details.items():
                detail["participants"] = participants.get(event_id, [])

        return details


def attach_details(item: dict, detail: dict[str, Any] | None) -> dict:
    """
    Merge a detail row into a base item (in place).

    Detail fields only fill keys the base item leaves unset. A persisted
    kind without its detail row keeps its base fields only.
    """
    if detail is None:
        if item["kind"] in DETAIL_MODELS:
            logger.warning("Detail row missing for %s item %s, using base fields", item["kind"], item["id"])
        return item

    fields = dict(detail)
    participants = fields.pop("participants", None)
    for name, value in fields.items():
        # task/goal priority and life_area never replace a base value
        if item.get(name) is not None:
            continue
        item[name] = value
    if participants is not None:
        item["metadata"] = {
            **item.get("metadata", {}),
            "participant_count": len(participants),
            "participants": participants,
        }
    return item
