"""FastAPI router for a user's in-app notifications."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from civictrack.auth.middleware import current_user
from civictrack.directory.models import User
from civictrack.notifications.models import Notification
from civictrack.repositories import resolve

router = APIRouter()


class MarkReadRequest(BaseModel):
    """Notification ids to mark read; omit to mark the whole inbox."""

    ids: list[str] | None = None


def _to_dict(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type,
        "report_id": n.report_id,
        "title": n.title,
        "message": n.message,
        "payload": n.payload,
        "created_at": n.created_at.isoformat(),
        "read_at": n.read_at.isoformat() if n.read_at else None,
    }


@router.get("/api/notifications")
async def list_notifications(
    request: Request,
    user: User = Depends(current_user),
) -> list[dict[str, Any]]:
    """The caller's 100 most recent notifications, newest first."""
    store = request.app.state.notification_store
    notifications = await resolve(store.list_for_user(user.id))
    return [_to_dict(n) for n in notifications]


@router.get("/api/notifications/{notification_id}")
async def get_notification(
    notification_id: str,
    request: Request,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    store = request.app.state.notification_store
    notification = await resolve(store.get(notification_id))
    if notification is None or notification.user_id != user.id:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id!r} not found")
    return _to_dict(notification)


@router.post("/api/notifications/mark-read")
async def mark_read(
    body: MarkReadRequest,
    request: Request,
    user: User = Depends(current_user),
) -> dict[str, int]:
    store = request.app.state.notification_store
    updated = await resolve(store.mark_read(user.id, body.ids))
    return {"updated": updated}
