"""Report service wiring assignment, lifecycle, persistence and side effects.

Every report mutation goes through here. Each one reads the report, lets
the orchestrator decide and apply the change in memory, then saves status
and history together in one conditional write. If another writer got there
first the whole read-decide-write sequence is repeated on a fresh copy.
Notifications, audit entries and metrics follow a successful save and
never affect its outcome.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from civictrack.assignment.selector import AssignmentDecision, AssignmentSelector
from civictrack.assignment.workload import WorkloadAggregator
from civictrack.classification.classifier import Classifier, match_category
from civictrack.core.config import LifecycleConfig
from civictrack.core.errors import (
    ConcurrencyConflictError,
    ReportNotFoundError,
    UserNotFoundError,
)
from civictrack.core.types import (
    ADMIN_ROLES,
    AuditEvent,
    ReasonCode,
    ReportStatus,
    UserRole,
)
from civictrack.directory.models import Category, Department, User
from civictrack.governance.audit import AuditLogger
from civictrack.lifecycle.guard import Actor
from civictrack.lifecycle.orchestrator import LifecycleOrchestrator, LifecycleResult
from civictrack.metrics import LifecycleMetrics
from civictrack.notifications.dispatcher import NotificationDispatcher
from civictrack.notifications.models import NotificationEvent
from civictrack.repositories import resolve
from civictrack.repositories.protocols import DirectoryRepository, ReportRepository
from civictrack.reports.models import Report, normalize_photos
from civictrack.reports.policies import can_view_report

logger = logging.getLogger(__name__)

# Statuses counted on the officer dashboard.
DASHBOARD_STATUSES: tuple[ReportStatus, ...] = (
    ReportStatus.SUBMITTED,
    ReportStatus.ASSIGNED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.AWAITING_VERIFICATION,
    ReportStatus.MISROUTED,
)

# Hidden from an officer's assigned list unless asked for by status.
_ASSIGNED_HIDDEN = (ReportStatus.DELETED, ReportStatus.CLOSED)

MAX_PAGE_SIZE = 100


class TransitionResult(BaseModel):
    """Outcome of a mutation as seen by callers.

    ``reason`` is a stable code; clients branch on it, never on messages.
    """

    ok: bool
    reason: ReasonCode | None = None
    report: Report | None = None
    from_status: ReportStatus | None = None
    to_status: ReportStatus | None = None
    events: list[NotificationEvent] = Field(default_factory=list)


class CreationResult(BaseModel):
    report: Report
    assignment: AssignmentDecision | None = None
    events: list[NotificationEvent] = Field(default_factory=list)


class Page(BaseModel):
    items: list[Report]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.limit))


class BulkOutcome(BaseModel):
    report_id: str
    ok: bool
    error: str | None = None


class CategorySuggestion(BaseModel):
    category: Category | None = None
    department: Department | None = None
    officers: list[User] = Field(default_factory=list)


def _paginate(items: list[Report], page: int, limit: int) -> Page:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    start = (page - 1) * limit
    return Page(items=items[start : start + limit], page=page, limit=limit, total=len(items))


def _parse_status(value: str | None) -> ReportStatus | None:
    if value is None:
        return None
    status = ReportStatus.parse(value)
    if status is None:
        raise ValueError(f"Unknown status {value!r}")
    return status


class ReportService:
    """Entry point for creating and mutating reports.

    Args:
        reports: Report store (in-memory or Postgres).
        directory: User, department and category directory.
        orchestrator: Applies lifecycle decisions; built from ``config`` if omitted.
        selector: Auto-assignment; built from the stores if omitted.
        classifier: Suggests a category when a report has none. Optional.
        dispatcher: Notification fan-out. Optional.
        audit_logger: Lifecycle audit trail. Optional.
        metrics: Counters; a private instance is created if omitted.
        config: Lifecycle settings.
    """

    def __init__(
        self,
        reports: ReportRepository,
        directory: DirectoryRepository,
        *,
        orchestrator: LifecycleOrchestrator | None = None,
        selector: AssignmentSelector | None = None,
        classifier: Classifier | None = None,
        dispatcher: NotificationDispatcher | None = None,
        audit_logger: AuditLogger | None = None,
        metrics: LifecycleMetrics | None = None,
        config: LifecycleConfig | None = None,
    ) -> None:
        self._config = config or LifecycleConfig()
        self._reports = reports
        self._directory = directory
        self._orchestrator = orchestrator or LifecycleOrchestrator(
            max_after_photos=self._config.max_after_photos
        )
        self._selector = selector or AssignmentSelector(directory, WorkloadAggregator(reports))
        self._classifier = classifier
        self._dispatcher = dispatcher
        self._audit = audit_logger
        self.metrics = metrics or LifecycleMetrics()

    # -- Lookups --

    async def _user(self, user_id: str) -> User:
        user = await resolve(self._directory.get_user(user_id))
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _actor(self, user_id: str) -> Actor:
        user = await self._user(user_id)
        return Actor(id=user.id, role=user.role)

    async def _load(self, report_id: str) -> Report:
        report = await resolve(self._reports.get(report_id))
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def get_report(self, report_id: str, viewer_id: str | None = None) -> Report:
        """Fetch a report, optionally enforcing the view policy for ``viewer_id``.

        Raises:
            ReportNotFoundError: Unknown report.
            PermissionError: The viewer may not see this report.
        """
        report = await self._load(report_id)
        if viewer_id is not None:
            viewer = await self._user(viewer_id)
            if not can_view_report(viewer, report):
                raise PermissionError(f"User {viewer_id!r} may not view report {report_id!r}")
        return report

    async def list_reports(
        self,
        *,
        reporter_id: str | None = None,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        """List reports newest first. Deleted reports only appear when asked for by status."""
        wanted = _parse_status(status)
        items = await resolve(
            self._reports.find_many(
                reporter_id=reporter_id,
                statuses=[wanted] if wanted else None,
                exclude_statuses=None if wanted else [ReportStatus.DELETED],
                search=search,
            )
        )
        return _paginate(items, page, limit)

    # -- Creation --

    async def create_report(
        self,
        reporter_id: str,
        *,
        title: str,
        description: str,
        category_id: str | None = None,
        department: str | None = None,
        photos_before: Any = None,
        dispatch: bool = True,
    ) -> CreationResult:
        """File a new report, auto-assigning it to the least-loaded officer.

        The report is saved exactly once, with its initial status and
        creation history already in place.

        Raises:
            UserNotFoundError: Unknown reporter.
            ValueError: ``category_id`` does not exist.
        """
        reporter = await self._actor(reporter_id)
        if category_id is not None:
            if await resolve(self._directory.get_category(category_id)) is None:
                raise ValueError(f"Invalid category_id {category_id!r}")

        report = Report(
            title=title.strip(),
            description=description.strip(),
            reporter_id=reporter.id,
            category_id=category_id,
            department=(department or "").strip() or None,
            photos_before=normalize_photos(photos_before),
        )
        if report.category_id is None:
            report.category_id = await self._classify(report.description)

        assignment: AssignmentDecision | None = None
        if self._config.auto_assign:
            assignment = await self._selector.select(report)
        result = self._orchestrator.record_creation(
            report, reporter, assignment.officer_id if assignment else None
        )
        report = await resolve(self._reports.save(report))
        logger.info("Report %s created by %s with status %s", report.id, reporter.id, report.status)

        self.metrics.inc("report_created", status=report.status)
        if assignment is not None:
            self.metrics.inc("auto_assigned")
        await self._record_audit(
            reporter,
            "report.created",
            report,
            {
                "status": str(report.status),
                "assigned_to": list(report.assigned_to),
                "history": [e.action for e in result.entries],
            },
        )

        events: list[NotificationEvent] = []
        if assignment is not None:
            events = await self._plan(report, ReportStatus.ASSIGNED, reporter)
        if dispatch:
            self._post(events)
        return CreationResult(report=report, assignment=assignment, events=events)

    async def _classify(self, description: str) -> str | None:
        if self._classifier is None:
            return None
        try:
            categories = await resolve(self._directory.list_categories())
            if not categories:
                return None
            suggested = await self._classifier.suggest_category(description, categories)
        except Exception as exc:
            logger.warning("Category suggestion failed, leaving report uncategorised: %s", exc)
            return None
        match = match_category(suggested, categories)
        return match.id if match else None

    async def suggest_category(self, description: str) -> CategorySuggestion:
        """Suggest a category plus its department and officers, without filing anything."""
        category_id = await self._classify(description)
        if category_id is None:
            return CategorySuggestion()
        category = await resolve(self._directory.get_category(category_id))
        department = await resolve(self._directory.find_department_for_category(category_id))
        officers: list[User] = []
        if department is not None:
            for oid in department.officer_ids:
                user = await resolve(self._directory.get_user(oid))
                if user is not None:
                    officers.append(user)
        return CategorySuggestion(category=category, department=department, officers=officers)

    # -- Mutations --

    async def _mutate(
        self,
        report_id: str,
        actor: Actor,
        apply: Callable[[Report], LifecycleResult],
    ) -> tuple[Report, LifecycleResult]:
        """Run read, decide, write; retry the whole sequence on a version conflict."""
        attempts = self._config.max_conflict_retries + 1
        for attempt in range(1, attempts + 1):
            report = await self._load(report_id)
            result = apply(report)
            if not result.ok:
                return report, result
            try:
                saved = await resolve(self._reports.save(report))
            except ConcurrencyConflictError as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Concurrent update of report %s by %s (attempt %d/%d): %s",
                    report_id, actor.id, attempt, attempts, exc,
                )
                continue
            return saved, result
        raise RuntimeError("unreachable")

    async def _finish(
        self,
        report: Report,
        result: LifecycleResult,
        actor: Actor,
        audit_action: str,
        dispatch: bool,
        details: dict[str, Any] | None = None,
    ) -> TransitionResult:
        if not result.ok:
            self.metrics.inc("transition_rejected", reason=result.reason)
            return TransitionResult(
                ok=False, reason=result.reason, report=report, from_status=result.from_status
            )

        events: list[NotificationEvent] = []
        if result.status_changed:
            self.metrics.inc("status_transition", to=result.to_status)
            events = await self._plan(report, result.to_status, actor)
        await self._record_audit(
            actor,
            audit_action,
            report,
            {
                "from": result.from_status and str(result.from_status),
                "to": result.to_status and str(result.to_status),
                "history": [e.action for e in result.entries],
                **(details or {}),
            },
        )
        if dispatch:
            self._post(events)
        return TransitionResult(
            ok=True,
            report=report,
            from_status=result.from_status,
            to_status=result.to_status,
            events=events,
        )

    async def set_status(
        self,
        report_id: str,
        target: str,
        actor_id: str,
        *,
        reason: str | None = None,
        dispatch: bool = True,
    ) -> TransitionResult:
        """Request a status change on behalf of ``actor_id``; the guard decides.

        Raises:
            ReportNotFoundError: Unknown report.
            UserNotFoundError: Unknown actor.
            PermissionError: A reporter acting on someone else's report.
            ConcurrencyConflictError: Still conflicting after every retry.
        """
        actor = await self._actor(actor_id)
        if actor.role == UserRole.REPORTER:
            owner = (await self._load(report_id)).reporter_id
            if owner != actor.id:
                raise PermissionError(f"User {actor_id!r} may not modify report {report_id!r}")
        report, result = await self._mutate(
            report_id,
            actor,
            lambda r: self._orchestrator.transition(r, target, actor, reason),
        )
        if result.ok and result.to_status == ReportStatus.MISROUTED:
            logger.warning(
                "Report %s misrouted by %s: %s", report.id, actor.id, report.misroute_reason
            )
        return await self._finish(report, result, actor, "report.status_changed", dispatch)

    async def start_work(self, report_id: str, officer_id: str, **kwargs: Any) -> TransitionResult:
        return await self.set_status(report_id, ReportStatus.IN_PROGRESS, officer_id, **kwargs)

    async def submit_for_verification(
        self, report_id: str, officer_id: str, **kwargs: Any
    ) -> TransitionResult:
        return await self.set_status(
            report_id, ReportStatus.AWAITING_VERIFICATION, officer_id, **kwargs
        )

    async def misroute(
        self, report_id: str, officer_id: str, reason: str | None, **kwargs: Any
    ) -> TransitionResult:
        return await self.set_status(
            report_id, ReportStatus.MISROUTED, officer_id, reason=reason, **kwargs
        )

    async def verify(self, report_id: str, reporter_id: str, **kwargs: Any) -> TransitionResult:
        return await self.set_status(report_id, ReportStatus.VERIFIED, reporter_id, **kwargs)

    async def close(self, report_id: str, reporter_id: str, **kwargs: Any) -> TransitionResult:
        return await self.set_status(report_id, ReportStatus.CLOSED, reporter_id, **kwargs)

    async def add_after_photos(
        self,
        report_id: str,
        actor_id: str,
        photos: Any,
        *,
        dispatch: bool = True,
    ) -> TransitionResult:
        """Attach resolution photos. Blank entries are dropped before counting."""
        actor = await self._actor(actor_id)
        normalized = normalize_photos(photos)
        report, result = await self._mutate(
            report_id,
            actor,
            lambda r: self._orchestrator.add_after_photos(r, actor, normalized),
        )
        if result.ok:
            self.metrics.inc("after_photos_added")
            logger.info(
                "Added %d after-photo(s) to report %s (total %d)",
                len(normalized), report.id, len(report.photos_after),
            )
        return await self._finish(
            report,
            result,
            actor,
            "report.after_photos_added",
            dispatch,
            details={"count": len(normalized)},
        )

    async def soft_delete(
        self, report_id: str, actor_id: str, *, dispatch: bool = True
    ) -> TransitionResult:
        actor = await self._actor(actor_id)
        report, result = await self._mutate(
            report_id, actor, lambda r: self._orchestrator.soft_delete(r, actor)
        )
        return await self._finish(report, result, actor, "report.deleted", dispatch)

    async def bulk_set_status(
        self,
        report_ids: Sequence[str],
        target: str,
        actor_id: str,
        *,
        dispatch: bool = True,
    ) -> tuple[list[BulkOutcome], list[NotificationEvent]]:
        """Admin override applied to each id independently.

        One report failing never stops the rest; each gets its own outcome
        (``not_found`` or a reason code on failure).

        Raises:
            UserNotFoundError: Unknown actor.
            PermissionError: The actor is not an admin.
        """
        actor = await self._actor(actor_id)
        if actor.role not in ADMIN_ROLES:
            raise PermissionError(f"User {actor_id!r} may not bulk-update reports")

        outcomes: list[BulkOutcome] = []
        events: list[NotificationEvent] = []
        for report_id in dict.fromkeys(report_ids):
            try:
                result = await self.set_status(report_id, target, actor.id, dispatch=dispatch)
            except ReportNotFoundError:
                outcomes.append(BulkOutcome(report_id=report_id, ok=False, error="not_found"))
                continue
            except ConcurrencyConflictError:
                outcomes.append(
                    BulkOutcome(report_id=report_id, ok=False, error="concurrent_modification")
                )
                continue
            events.extend(result.events)
            outcomes.append(
                BulkOutcome(
                    report_id=report_id,
                    ok=result.ok,
                    error=None if result.ok else str(result.reason),
                )
            )
        return outcomes, events

    # -- Officer views --

    async def officer_dashboard(self, officer_id: str) -> dict[str, Any]:
        """Per-status counts of the officer's reports plus the in-progress total."""
        officer = await self._user(officer_id)
        reports = await resolve(
            self._reports.find_many(assignee_id=officer.id, statuses=DASHBOARD_STATUSES)
        )
        counts = {str(s): 0 for s in DASHBOARD_STATUSES}
        for r in reports:
            counts[str(r.status)] += 1
        return {"counts": counts, "active_in_progress": counts[ReportStatus.IN_PROGRESS]}

    async def list_assigned(
        self,
        officer_id: str,
        *,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        """Reports assigned to the officer; closed and deleted hidden by default."""
        officer = await self._user(officer_id)
        wanted = _parse_status(status)
        items = await resolve(
            self._reports.find_many(
                assignee_id=officer.id,
                statuses=[wanted] if wanted else None,
                exclude_statuses=None if wanted else _ASSIGNED_HIDDEN,
                search=search,
            )
        )
        items.sort(key=lambda r: r.updated_at, reverse=True)
        return _paginate(items, page, limit)

    # -- Side effects --

    async def _plan(
        self, report: Report, status: ReportStatus | None, actor: Actor
    ) -> list[NotificationEvent]:
        if self._dispatcher is None or status is None:
            return []
        try:
            event = await self._dispatcher.plan(report, status, actor)
        except Exception:
            logger.exception("Could not plan notifications for report %s", report.id)
            return []
        return [event] if event is not None else []

    def _post(self, events: list[NotificationEvent]) -> None:
        if self._dispatcher is None:
            return
        for event in events:
            self._dispatcher.post(event)

    async def _record_audit(
        self, actor: Actor, action: str, report: Report, details: dict[str, Any]
    ) -> None:
        if self._audit is None:
            return
        event = AuditEvent(
            actor=actor.id,
            actor_role=actor.role,
            action=action,
            resource=f"report:{report.id}",
            details=details,
        )
        try:
            await resolve(self._audit.log(event))
        except Exception:
            logger.exception("Audit write failed for %s on report %s", action, report.id)

    @property
    def dispatcher(self) -> NotificationDispatcher | None:
        return self._dispatcher
