"""Least-loaded officer selection for new reports."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from civictrack.assignment.workload import WorkloadAggregator
from civictrack.directory.models import OfficerCandidate
from civictrack.repositories import resolve
from civictrack.repositories.protocols import DirectoryRepository
from civictrack.reports.models import Report

logger = logging.getLogger(__name__)


class ResolvedDepartment(BaseModel):
    """Department a report routes to. ``id`` is None for a bare label."""

    id: str | None = None
    name: str


class AssignmentDecision(BaseModel):
    officer_id: str
    workload: int
    department: ResolvedDepartment
    workloads: dict[str, int] = Field(default_factory=dict)


class AssignmentSelector:
    """Routes a new report to the officer with the fewest open reports.

    The candidate pool is the officers directly linked to the resolved
    department followed by officers whose own department label matches its
    name, deduplicated by id. Ties go to the candidate that comes first in
    that order.
    """

    def __init__(self, directory: DirectoryRepository, workload: WorkloadAggregator) -> None:
        self._directory = directory
        self._workload = workload

    async def resolve_department(self, report: Report) -> ResolvedDepartment | None:
        if report.department:
            dept = await resolve(self._directory.find_department_by_name(report.department))
            return ResolvedDepartment(id=dept.id if dept else None, name=report.department)
        if report.category_id:
            dept = await resolve(self._directory.find_department_for_category(report.category_id))
            if dept is not None:
                return ResolvedDepartment(id=dept.id, name=dept.name)
        return None

    async def candidate_pool(self, department: ResolvedDepartment) -> list[OfficerCandidate]:
        direct: list[OfficerCandidate] = []
        if department.id:
            direct = await resolve(
                self._directory.list_active_officers_by_department(department.id)
            )
        by_label = await resolve(
            self._directory.list_active_officers_by_department_label(department.name)
        )
        pool: dict[str, OfficerCandidate] = {}
        for candidate in [*direct, *by_label]:
            if candidate.active and candidate.id not in pool:
                pool[candidate.id] = candidate
        return list(pool.values())

    async def select(self, report: Report) -> AssignmentDecision | None:
        """Pick an officer for ``report``, or None when nobody is eligible."""
        department = await self.resolve_department(report)
        if department is None:
            logger.info("Report %s has no resolvable department; leaving unassigned", report.id)
            return None

        pool = await self.candidate_pool(department)
        if not pool:
            logger.info(
                "No active officers for department %r; report %s left unassigned",
                department.name, report.id,
            )
            return None

        ids = [c.id for c in pool]
        workloads = await self._workload.snapshot(ids)
        # min() keeps the first of equal keys, which preserves pool order on ties
        chosen = min(ids, key=lambda oid: workloads.get(oid, 0))
        logger.info(
            "Auto-assigning report %s to officer %s (open workload %d, pool of %d)",
            report.id, chosen, workloads.get(chosen, 0), len(pool),
        )
        return AssignmentDecision(
            officer_id=chosen,
            workload=workloads.get(chosen, 0),
            department=department,
            workloads=workloads,
        )
