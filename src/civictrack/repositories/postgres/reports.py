"""PostgreSQL report repository with version-checked writes."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from civictrack.core.errors import ConcurrencyConflictError
from civictrack.core.types import ReportStatus
from civictrack.db.engine import DatabaseManager
from civictrack.db.models import ReportAssigneeRow, ReportRow
from civictrack.reports.models import HistoryEntry, Photo, Report


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class PostgresReportRepository:
    """Postgres-backed report storage.

    ``save`` issues ``UPDATE ... WHERE version = :expected``; zero affected
    rows means someone else saved first.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get(self, report_id: str) -> Report | None:
        async with self._db.session() as db:
            row = await db.get(ReportRow, report_id)
            if row is None:
                return None
            return self._row_to_report(row)

    async def find_many(
        self,
        *,
        reporter_id: str | None = None,
        assignee_id: str | None = None,
        statuses: Iterable[str] | None = None,
        exclude_statuses: Iterable[str] | None = None,
        search: str | None = None,
    ) -> list[Report]:
        stmt = select(ReportRow)
        if reporter_id is not None:
            stmt = stmt.where(ReportRow.reporter_id == reporter_id)
        if assignee_id is not None:
            stmt = stmt.where(
                ReportRow.id.in_(
                    select(ReportAssigneeRow.report_id).where(
                        ReportAssigneeRow.user_id == assignee_id
                    )
                )
            )
        if statuses is not None:
            stmt = stmt.where(ReportRow.status.in_([str(s) for s in statuses]))
        excluded = [str(s) for s in exclude_statuses or ()]
        if excluded:
            stmt = stmt.where(ReportRow.status.not_in(excluded))
        if search:
            needle = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(ReportRow.title).like(needle),
                    func.lower(ReportRow.description).like(needle),
                )
            )
        stmt = stmt.order_by(ReportRow.created_at.desc())

        async with self._db.session() as db:
            result = await db.execute(stmt)
            return [self._row_to_report(r) for r in result.scalars().all()]

    async def count_open_by_assignee(
        self, officer_ids: Iterable[str], open_statuses: Iterable[ReportStatus]
    ) -> dict[str, int]:
        counts = {oid: 0 for oid in officer_ids}
        if not counts:
            return counts
        stmt = (
            select(ReportAssigneeRow.user_id, func.count(ReportAssigneeRow.report_id))
            .join(ReportRow, ReportRow.id == ReportAssigneeRow.report_id)
            .where(ReportAssigneeRow.user_id.in_(list(counts)))
            .where(ReportRow.status.in_([str(s) for s in open_statuses]))
            .group_by(ReportAssigneeRow.user_id)
        )
        async with self._db.session() as db:
            result = await db.execute(stmt)
            for user_id, n in result.all():
                counts[user_id] = n
        return counts

    async def save(self, report: Report) -> Report:
        expected = report.version
        values = self._report_values(report)
        async with self._db.session() as db:
            if expected == 0:
                try:
                    await db.execute(
                        insert(ReportRow).values(id=report.id, version=1, **values)
                    )
                    await db.flush()
                except IntegrityError:
                    await db.rollback()
                    actual = await self._current_version(report.id)
                    raise ConcurrencyConflictError(report.id, expected, actual) from None
            else:
                result = await db.execute(
                    update(ReportRow)
                    .where(ReportRow.id == report.id, ReportRow.version == expected)
                    .values(version=ReportRow.version + 1, **values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    await db.rollback()
                    actual = await self._current_version(report.id)
                    raise ConcurrencyConflictError(report.id, expected, actual)
                await db.execute(
                    delete(ReportAssigneeRow).where(ReportAssigneeRow.report_id == report.id)
                )
            if report.assigned_to:
                await db.execute(
                    insert(ReportAssigneeRow),
                    [
                        {"report_id": report.id, "user_id": uid, "position": i}
                        for i, uid in enumerate(dict.fromkeys(report.assigned_to))
                    ],
                )
            await db.commit()
        report.version = expected + 1
        return report

    @property
    def count(self) -> int:
        raise NotImplementedError("Use async_count() instead for Postgres")

    async def async_count(self) -> int:
        async with self._db.session() as db:
            result = await db.execute(select(func.count()).select_from(ReportRow))
            return result.scalar_one()

    async def _current_version(self, report_id: str) -> int:
        async with self._db.session() as db:
            result = await db.execute(
                select(ReportRow.version).where(ReportRow.id == report_id)
            )
            return result.scalar_one_or_none() or 0

    @staticmethod
    def _report_values(report: Report) -> dict[str, Any]:
        return {
            "title": report.title,
            "description": report.description,
            "reporter_id": report.reporter_id,
            "status": report.status.value,
            "category_id": report.category_id,
            "department": report.department,
            "misroute_reason": report.misroute_reason,
            "photos_before": [p.model_dump(mode="json") for p in report.photos_before],
            "photos_after": [p.model_dump(mode="json") for p in report.photos_after],
            "history": [h.model_dump(mode="json") for h in report.history],
            "created_at": report.created_at,
            "updated_at": report.updated_at,
        }

    @staticmethod
    def _row_to_report(row: ReportRow) -> Report:
        return Report(
            id=row.id,
            title=row.title,
            description=row.description,
            reporter_id=row.reporter_id,
            status=ReportStatus(row.status),
            assigned_to=[a.user_id for a in row.assignees],
            category_id=row.category_id,
            department=row.department,
            misroute_reason=row.misroute_reason,
            photos_before=[Photo.model_validate(p) for p in row.photos_before or []],
            photos_after=[Photo.model_validate(p) for p in row.photos_after or []],
            history=[HistoryEntry.model_validate(h) for h in row.history or []],
            version=row.version,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )
