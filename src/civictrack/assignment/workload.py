"""Open-workload counts per officer."""

from __future__ import annotations

from collections.abc import Sequence

from civictrack.core.types import OPEN_STATUSES
from civictrack.repositories import resolve
from civictrack.repositories.protocols import ReportRepository


class WorkloadAggregator:
    """Counts each officer's open reports (assigned, in progress, awaiting verification).

    Nothing is cached: every call reads the store afresh.
    """

    def __init__(self, reports: ReportRepository) -> None:
        self._reports = reports

    async def snapshot(self, officer_ids: Sequence[str]) -> dict[str, int]:
        if not officer_ids:
            return {}
        counts = await resolve(
            self._reports.count_open_by_assignee(list(officer_ids), OPEN_STATUSES)
        )
        return {oid: counts.get(oid, 0) for oid in officer_ids}
