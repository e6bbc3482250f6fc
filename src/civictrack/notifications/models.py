"""Notification data models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    type: str
    report_id: str | None = None
    title: str = ""
    message: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read_at: datetime | None = None


class NotificationTemplate(BaseModel):
    id: str
    title: str
    body: str


class NotificationEvent(BaseModel):
    """A fan-out request posted to the dispatcher."""

    type: str
    user_ids: list[str]
    report_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
