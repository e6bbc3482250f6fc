"""PostgreSQL notification repository."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import func, select, update

from civictrack.db.engine import DatabaseManager
from civictrack.db.models import NotificationRow
from civictrack.notifications.models import Notification
from civictrack.notifications.store import INBOX_LIMIT


class PostgresNotificationRepository:
    """Postgres-backed notification storage."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def save(self, notification: Notification) -> Notification:
        async with self._db.session() as db:
            existing = await db.get(NotificationRow, notification.id)
            if existing:
                existing.title = notification.title
                existing.message = notification.message
                existing.payload = notification.payload
                existing.read_at = notification.read_at
            else:
                db.add(
                    NotificationRow(
                        id=notification.id,
                        user_id=notification.user_id,
                        type=notification.type,
                        report_id=notification.report_id,
                        title=notification.title,
                        message=notification.message,
                        payload=notification.payload,
                        created_at=notification.created_at,
                        read_at=notification.read_at,
                    )
                )
            await db.commit()
        return notification

    async def get(self, notification_id: str) -> Notification | None:
        async with self._db.session() as db:
            row = await db.get(NotificationRow, notification_id)
            if row is None:
                return None
            return self._row_to_notification(row)

    async def list_for_user(self, user_id: str, limit: int = INBOX_LIMIT) -> list[Notification]:
        async with self._db.session() as db:
            result = await db.execute(
                select(NotificationRow)
                .where(NotificationRow.user_id == user_id)
                .order_by(NotificationRow.created_at.desc())
                .limit(limit)
            )
            return [self._row_to_notification(r) for r in result.scalars().all()]

    async def mark_read(self, user_id: str, ids: Iterable[str] | None = None) -> int:
        stmt = (
            update(NotificationRow)
            .where(NotificationRow.user_id == user_id, NotificationRow.read_at.is_(None))
            .values(read_at=datetime.now(timezone.utc))
        )
        if ids is not None:
            stmt = stmt.where(NotificationRow.id.in_(list(ids)))
        async with self._db.session() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount

    async def list_all(self) -> list[Notification]:
        async with self._db.session() as db:
            result = await db.execute(select(NotificationRow).order_by(NotificationRow.created_at))
            return [self._row_to_notification(r) for r in result.scalars().all()]

    @property
    def count(self) -> int:
        raise NotImplementedError("Use async_count() instead for Postgres")

    async def async_count(self) -> int:
        async with self._db.session() as db:
            result = await db.execute(select(func.count()).select_from(NotificationRow))
            return result.scalar_one()

    @staticmethod
    def _row_to_notification(row: NotificationRow) -> Notification:
        return Notification(
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            report_id=row.report_id,
            title=row.title,
            message=row.message,
            payload=row.payload or {},
            created_at=row.created_at,
            read_at=row.read_at,
        )
