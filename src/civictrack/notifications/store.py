"""In-memory notification store, indexed by recipient."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone

from civictrack.notifications.models import Notification

INBOX_LIMIT = 100


class NotificationStore:
    def __init__(self) -> None:
        self._by_id: dict[str, Notification] = {}
        self._inbox: defaultdict[str, list[str]] = defaultdict(list)

    def save(self, notification: Notification) -> Notification:
        if notification.id not in self._by_id:
            self._inbox[notification.user_id].append(notification.id)
        self._by_id[notification.id] = notification
        return notification

    def get(self, notification_id: str) -> Notification | None:
        return self._by_id.get(notification_id)

    def list_for_user(self, user_id: str, limit: int = INBOX_LIMIT) -> list[Notification]:
        """A recipient's inbox, newest first, at most ``limit`` entries."""
        inbox = [self._by_id[nid] for nid in self._inbox.get(user_id, [])]
        return sorted(inbox, key=lambda n: n.created_at, reverse=True)[:limit]

    def mark_read(self, user_id: str, ids: Iterable[str] | None = None) -> int:
        """Stamp ``read_at`` on the user's unread notifications.

        With ``ids`` only those are touched; otherwise the whole inbox.
        Returns how many were marked.
        """
        wanted = set(ids) if ids is not None else None
        now = datetime.now(timezone.utc)
        marked = 0
        for nid in self._inbox.get(user_id, []):
            notification = self._by_id[nid]
            if notification.read_at is not None:
                continue
            if wanted is not None and nid not in wanted:
                continue
            notification.read_at = now
            marked += 1
        return marked

    def list_all(self) -> list[Notification]:
        return list(self._by_id.values())

    @property
    def count(self) -> int:
        return len(self._by_id)
