"""Report entity and its provenance log."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from civictrack.core.types import ReportStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Photo(BaseModel):
    """An evidence attachment."""

    url: str
    uploaded_at: datetime = Field(default_factory=_utcnow)
    meta: dict[str, Any] | None = None


class HistoryEntry(BaseModel):
    """Immutable provenance record, one per lifecycle event."""

    model_config = ConfigDict(frozen=True)

    actor_id: str
    actor_role: str
    action: str
    timestamp: datetime = Field(default_factory=_utcnow)


class Report(BaseModel):
    """A civic issue report.

    ``history`` is append-only: use :meth:`append_history`, never assign or
    slice it. ``version`` increases by one on every successful save and is
    used by stores for conditional writes.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str
    reporter_id: str
    status: ReportStatus = ReportStatus.DRAFT
    assigned_to: list[str] = Field(default_factory=list)
    category_id: str | None = None
    department: str | None = None
    misroute_reason: str | None = None
    photos_before: list[Photo] = Field(default_factory=list)
    photos_after: list[Photo] = Field(default_factory=list)
    history: list[HistoryEntry] = Field(default_factory=list)
    version: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_assigned_to(self, user_id: str) -> bool:
        return user_id in self.assigned_to

    def append_history(self, actor_id: str, actor_role: str, action: str) -> HistoryEntry:
        entry = HistoryEntry(actor_id=actor_id, actor_role=actor_role, action=action)
        self.history.append(entry)
        self.updated_at = entry.timestamp
        return entry


def normalize_photos(photos: Any) -> list[Photo]:
    """Coerce a URL, a dict, or a list of either into Photo objects.

    Blank and unrecognised items are dropped.
    """
    if not photos:
        return []
    if not isinstance(photos, list):
        photos = [photos]
    result: list[Photo] = []
    for item in photos:
        if isinstance(item, Photo):
            result.append(item)
        elif isinstance(item, str) and item.strip():
            result.append(Photo(url=item.strip()))
        elif isinstance(item, dict) and str(item.get("url") or "").strip():
            result.append(Photo(url=str(item["url"]).strip(), meta=item.get("meta")))
    return result
