"""Notification sink Protocol and the store-backed implementation."""

from __future__ import annotations

from typing import Any, Awaitable, Protocol, runtime_checkable

from civictrack.notifications.engine import NotificationEngine
from civictrack.notifications.models import Notification
from civictrack.notifications.store import NotificationStore
from civictrack.repositories import resolve
from civictrack.repositories.protocols import NotificationRepository


@runtime_checkable
class NotificationSink(Protocol):
    """Receives notification fan-out requests. Delivery is not guaranteed."""

    def notify(
        self,
        user_ids: list[str],
        event_type: str,
        payload: dict[str, Any],
        report_id: str | None = None,
    ) -> int | Awaitable[int]: ...


class StoreNotificationSink:
    """Renders one in-app notification per recipient and stores it."""

    def __init__(
        self,
        store: NotificationRepository | None = None,
        engine: NotificationEngine | None = None,
    ) -> None:
        self._store = store if store is not None else NotificationStore()
        self._engine = engine or NotificationEngine()

    @property
    def store(self) -> NotificationRepository:
        return self._store

    async def notify(
        self,
        user_ids: list[str],
        event_type: str,
        payload: dict[str, Any],
        report_id: str | None = None,
    ) -> int:
        title, message = self._engine.render(event_type, payload)
        for user_id in user_ids:
            await resolve(
                self._store.save(
                    Notification(
                        user_id=user_id,
                        type=event_type,
                        report_id=report_id,
                        title=title,
                        message=message,
                        payload=dict(payload),
                    )
                )
            )
        return len(user_ids)
