"""In-memory report store."""

from __future__ import annotations

from collections.abc import Iterable

from civictrack.core.errors import ConcurrencyConflictError
from civictrack.core.types import ReportStatus
from civictrack.reports.models import Report


class ReportStore:
    """In-memory dict store for reports.

    Reads hand out deep copies, so mutating a loaded report never touches
    stored state until :meth:`save` succeeds. ``save`` is a compare-and-swap
    on ``Report.version``.
    """

    def __init__(self) -> None:
        self._reports: dict[str, Report] = {}

    def get(self, report_id: str) -> Report | None:
        report = self._reports.get(report_id)
        return report.model_copy(deep=True) if report else None

    def find_many(
        self,
        *,
        reporter_id: str | None = None,
        assignee_id: str | None = None,
        statuses: Iterable[str] | None = None,
        exclude_statuses: Iterable[str] | None = None,
        search: str | None = None,
    ) -> list[Report]:
        """Return matching reports, most recently created first."""
        wanted = set(statuses) if statuses is not None else None
        excluded = set(exclude_statuses or ())
        needle = search.lower() if search else None
        results = []
        for r in self._reports.values():
            if reporter_id is not None and r.reporter_id != reporter_id:
                continue
            if assignee_id is not None and assignee_id not in r.assigned_to:
                continue
            if wanted is not None and r.status not in wanted:
                continue
            if r.status in excluded:
                continue
            if needle and needle not in r.title.lower() and needle not in r.description.lower():
                continue
            results.append(r.model_copy(deep=True))
        results.sort(key=lambda r: r.created_at, reverse=True)
        return results

    def count_open_by_assignee(
        self, officer_ids: Iterable[str], open_statuses: Iterable[ReportStatus]
    ) -> dict[str, int]:
        """Count reports per officer whose status is in ``open_statuses``.

        A report with several assignees counts once for each of them.
        Officers with no open reports are reported with a count of zero.
        """
        counts = {oid: 0 for oid in officer_ids}
        statuses = set(open_statuses)
        for r in self._reports.values():
            if r.status not in statuses:
                continue
            for oid in set(r.assigned_to):
                if oid in counts:
                    counts[oid] += 1
        return counts

    def save(self, report: Report) -> Report:
        """Persist ``report`` if nobody saved it since it was read.

        Raises:
            ConcurrencyConflictError: If the stored version differs from
                ``report.version``.
        """
        current = self._reports.get(report.id)
        actual = current.version if current else 0
        if actual != report.version:
            raise ConcurrencyConflictError(report.id, report.version, actual)
        report.version += 1
        self._reports[report.id] = report.model_copy(deep=True)
        return report

    @property
    def count(self) -> int:
        return len(self._reports)
