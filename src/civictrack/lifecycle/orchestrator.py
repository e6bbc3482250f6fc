"""Applies lifecycle decisions to in-memory reports.

The orchestrator is the only code that changes a report's status or
appends to its history. It works on the object it is given and never
touches storage; callers persist the report (status and history together,
in one write) and then dispatch notifications.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from civictrack.core.types import ADMIN_ROLES, ReasonCode, ReportStatus, UserRole
from civictrack.lifecycle import guard
from civictrack.lifecycle.guard import Actor
from civictrack.reports.models import HistoryEntry, Photo, Report

logger = logging.getLogger(__name__)

CREATED = "created"
CREATED_AUTO_ASSIGNED = "created (auto-assigned)"
AUTO_ASSIGNED = "auto-assigned (load-balanced)"
SOFT_DELETED = "soft-deleted"

# Reporters may withdraw a report only before work starts.
_REPORTER_DELETABLE = frozenset({ReportStatus.DRAFT, ReportStatus.SUBMITTED})


class LifecycleResult(BaseModel):
    """Typed outcome of a lifecycle mutation."""

    ok: bool
    reason: ReasonCode | None = None
    from_status: ReportStatus | None = None
    to_status: ReportStatus | None = None
    entries: list[HistoryEntry] = Field(default_factory=list)

    @property
    def status_changed(self) -> bool:
        return self.ok and self.to_status is not None and self.to_status != self.from_status


def _rejected(reason: ReasonCode, report: Report) -> LifecycleResult:
    return LifecycleResult(ok=False, reason=reason, from_status=report.status)


class LifecycleOrchestrator:
    """Entry point for every report mutation.

    Args:
        max_after_photos: Upper bound on ``photos_after`` length.
    """

    def __init__(self, max_after_photos: int = 10) -> None:
        self._max_after_photos = max_after_photos

    def record_creation(
        self,
        report: Report,
        reporter: Actor,
        assignee_id: str | None = None,
    ) -> LifecycleResult:
        """Set the initial status of a new report and record its creation.

        With an ``assignee_id`` the report starts ``assigned`` and gets two
        history entries (the reporter's creation, then the auto-assignment
        attributed to the officer); otherwise it starts ``submitted``.
        """
        previous = report.status
        entries: list[HistoryEntry] = []
        if assignee_id:
            report.status = ReportStatus.ASSIGNED
            report.assigned_to = [assignee_id]
            entries.append(report.append_history(reporter.id, reporter.role, CREATED_AUTO_ASSIGNED))
            entries.append(report.append_history(assignee_id, UserRole.OFFICER, AUTO_ASSIGNED))
        else:
            report.status = ReportStatus.SUBMITTED
            entries.append(report.append_history(reporter.id, reporter.role, CREATED))
        return LifecycleResult(
            ok=True, from_status=previous, to_status=report.status, entries=entries
        )

    def transition(
        self,
        report: Report,
        target: str,
        actor: Actor,
        reason: str | None = None,
    ) -> LifecycleResult:
        """Ask the guard and, if allowed, apply the status change in memory."""
        decision = guard.decide(report, target, actor, reason)
        if not decision.allowed:
            logger.warning(
                "Transition rejected for report %s: %s -> %s by %s (%s): %s",
                report.id, report.status, target, actor.id, actor.role, decision.reason,
            )
            return LifecycleResult(ok=False, reason=decision.reason, from_status=report.status)

        for field, value in decision.updates.items():
            setattr(report, field, value)
        entry = report.append_history(actor.id, actor.role, decision.history_action)
        logger.info(
            "Report %s moved %s -> %s by %s (%s)",
            report.id, decision.from_status, decision.to_status, actor.id, actor.role,
        )
        return LifecycleResult(
            ok=True,
            from_status=decision.from_status,
            to_status=decision.to_status,
            entries=[entry],
        )

    def add_after_photos(
        self,
        report: Report,
        actor: Actor,
        photos: Sequence[Photo],
    ) -> LifecycleResult:
        """Attach resolution evidence; only assignees and admins may do so."""
        if report.status == ReportStatus.DELETED:
            return _rejected(ReasonCode.CANNOT_MODIFY_DELETED, report)
        if actor.role not in ADMIN_ROLES and not report.is_assigned_to(actor.id):
            return _rejected(ReasonCode.NOT_ASSIGNED, report)
        if len(report.photos_after) + len(photos) > self._max_after_photos:
            return _rejected(ReasonCode.AFTER_PHOTOS_LIMIT, report)

        report.photos_after.extend(photos)
        entry = report.append_history(actor.id, actor.role, f"added_after_photos:{len(photos)}")
        return LifecycleResult(ok=True, from_status=report.status, entries=[entry])

    def soft_delete(self, report: Report, actor: Actor) -> LifecycleResult:
        """Move a report to ``deleted``.

        Admins may delete anything not already deleted; the reporter may
        withdraw their own report while it is a draft or still submitted.
        """
        current = report.status
        if current == ReportStatus.DELETED:
            return _rejected(ReasonCode.CANNOT_MODIFY_DELETED, report)
        owner = actor.role == UserRole.REPORTER and report.reporter_id == actor.id
        if actor.role not in ADMIN_ROLES and not (owner and current in _REPORTER_DELETABLE):
            return _rejected(ReasonCode.FORBIDDEN, report)

        report.status = ReportStatus.DELETED
        entry = report.append_history(actor.id, actor.role, SOFT_DELETED)
        logger.info("Report %s soft-deleted by %s (%s)", report.id, actor.id, actor.role)
        return LifecycleResult(
            ok=True, from_status=current, to_status=ReportStatus.DELETED, entries=[entry]
        )
