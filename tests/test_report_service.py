"""Tests for ReportService: creation, transitions, retries and side effects."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from civictrack.core.config import AuditConfig, LifecycleConfig
from civictrack.core.errors import (
    ConcurrencyConflictError,
    ReportNotFoundError,
    UserNotFoundError,
)
from civictrack.core.types import NotificationType, ReasonCode, ReportStatus, UserRole
from civictrack.directory.models import Category
from civictrack.directory.store import DirectoryStore
from civictrack.governance.audit import AuditLogger
from civictrack.lifecycle.orchestrator import AUTO_ASSIGNED, CREATED, CREATED_AUTO_ASSIGNED
from civictrack.notifications.dispatcher import NotificationDispatcher
from civictrack.notifications.engine import NotificationEngine
from civictrack.notifications.service import StoreNotificationSink
from civictrack.notifications.store import NotificationStore
from civictrack.reports.models import Report
from civictrack.reports.service import ReportService
from civictrack.reports.store import ReportStore
from tests.conftest import add_category, add_department, add_user, seed_open_reports


class FlakyReportStore(ReportStore):
    """Lets another writer sneak in before the next ``conflicts`` saves."""

    def __init__(self, conflicts: int = 1):
        super().__init__()
        self.conflicts = conflicts
        self.attempts = 0

    def save(self, report: Report) -> Report:
        if report.version > 0:
            self.attempts += 1
            if self.conflicts > 0:
                self.conflicts -= 1
                stored = self._reports[report.id]
                stored.version += 1
        return super().save(report)


class StaticClassifier:
    def __init__(self, answer: str):
        self.answer = answer
        self.calls = 0

    async def suggest_category(self, text: str, candidates: Sequence[Category]) -> str:
        self.calls += 1
        return self.answer


class BrokenClassifier:
    async def suggest_category(self, text: str, candidates: Sequence[Category]) -> str:
        raise RuntimeError("model offline")


@pytest.fixture
def notifications() -> NotificationStore:
    return NotificationStore()


@pytest.fixture
def audit(tmp_path: Path) -> AuditLogger:
    return AuditLogger(config=AuditConfig(log_dir=str(tmp_path)))


@pytest.fixture
def city(directory: DirectoryStore) -> dict:
    """One department with one officer, an admin and a reporter."""
    olga = add_user(directory, "Olga", UserRole.OFFICER)
    bea = add_user(directory, "Bea", UserRole.OFFICER)
    roads = add_category(directory, "Roads", ["pothole", "asphalt"])
    parks = add_category(directory, "Parks", ["tree", "bench"])
    add_department(directory, "Public Works", [olga], [roads])
    add_department(directory, "Parks Dept", [bea], [parks])
    add_user(directory, "Ada", UserRole.ADMIN)
    add_user(directory, "Sam", UserRole.SUPERADMIN)
    add_user(directory, "Rita")
    add_user(directory, "Ron")
    return {"roads": roads, "parks": parks}


def _service(
    directory: DirectoryStore,
    reports: ReportStore,
    notifications: NotificationStore | None = None,
    audit: AuditLogger | None = None,
    **kwargs,
) -> ReportService:
    dispatcher = None
    if notifications is not None:
        dispatcher = NotificationDispatcher(
            StoreNotificationSink(notifications, NotificationEngine()), directory
        )
    return ReportService(reports, directory, dispatcher=dispatcher, audit_logger=audit, **kwargs)


async def _in_progress(service: ReportService, city: dict) -> Report:
    created = await service.create_report(
        "rita", title="Pothole", description="Deep pothole", category_id=city["roads"].id
    )
    result = await service.start_work(created.report.id, "olga")
    assert result.ok
    return result.report


class TestCreation:
    async def test_auto_assigned_to_only_officer(self, directory, reports, city):
        service = _service(directory, reports)
        result = await service.create_report(
            "rita", title="Pothole", description="Deep hole", category_id=city["roads"].id
        )
        report = result.report
        assert report.status == ReportStatus.ASSIGNED
        assert report.assigned_to == ["olga"]
        assert [e.action for e in report.history] == [CREATED_AUTO_ASSIGNED, AUTO_ASSIGNED]
        assert report.version == 1
        assert reports.get(report.id).status == ReportStatus.ASSIGNED
        assert result.assignment.officer_id == "olga"

    async def test_least_loaded_officer_wins(self, directory, reports, city):
        add_user(directory, "Otto", UserRole.OFFICER, department="Public Works")
        seed_open_reports(reports, "olga", 2)
        service = _service(directory, reports)
        result = await service.create_report(
            "rita", title="Pothole", description="x", category_id=city["roads"].id
        )
        assert result.report.assigned_to == ["otto"]

    async def test_no_department_stays_submitted(self, directory, reports, city):
        service = _service(directory, reports)
        result = await service.create_report("rita", title="Noise", description="Loud music")
        assert result.report.status == ReportStatus.SUBMITTED
        assert result.report.assigned_to == []
        assert [e.action for e in result.report.history] == [CREATED]
        assert result.assignment is None

    async def test_auto_assign_disabled(self, directory, reports, city):
        service = _service(directory, reports, config=LifecycleConfig(auto_assign=False))
        result = await service.create_report(
            "rita", title="Pothole", description="x", category_id=city["roads"].id
        )
        assert result.report.status == ReportStatus.SUBMITTED

    async def test_invalid_category(self, directory, reports, city):
        service = _service(directory, reports)
        with pytest.raises(ValueError):
            await service.create_report("rita", title="t", description="d", category_id="cat-nope")
        assert reports.count == 0

    async def test_unknown_reporter(self, directory, reports, city):
        with pytest.raises(UserNotFoundError):
            await _service(directory, reports).create_report("ghost", title="t", description="d")

    async def test_inputs_are_trimmed_and_photos_normalized(self, directory, reports, city):
        service = _service(directory, reports)
        result = await service.create_report(
            "rita",
            title="  Bench broken ",
            description=" splinters ",
            department="  ",
            photos_before=["https://img/1.jpg", "  ", {"url": "https://img/2.jpg"}],
        )
        assert result.report.title == "Bench broken"
        assert result.report.department is None
        assert [p.url for p in result.report.photos_before] == ["https://img/1.jpg", "https://img/2.jpg"]

    async def test_classifier_fills_category(self, directory, reports, city):
        classifier = StaticClassifier("parks")
        service = _service(directory, reports, classifier=classifier)
        result = await service.create_report("rita", title="Tree", description="Fallen tree")
        assert result.report.category_id == city["parks"].id
        assert result.report.assigned_to == ["bea"]

    async def test_classifier_not_consulted_when_category_given(self, directory, reports, city):
        classifier = StaticClassifier("Parks")
        service = _service(directory, reports, classifier=classifier)
        await service.create_report("rita", title="t", description="d", category_id=city["roads"].id)
        assert classifier.calls == 0

    async def test_classifier_failure_is_swallowed(self, directory, reports, city):
        service = _service(directory, reports, classifier=BrokenClassifier())
        result = await service.create_report("rita", title="Tree", description="Fallen tree")
        assert result.report.category_id is None
        assert result.report.status == ReportStatus.SUBMITTED

    async def test_unknown_answer_leaves_uncategorised(self, directory, reports, city):
        service = _service(directory, reports, classifier=StaticClassifier("UNKNOWN"))
        result = await service.create_report("rita", title="?", description="something")
        assert result.report.category_id is None


class TestTransitions:
    async def test_after_photos_required(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        result = await service.submit_for_verification(report.id, "olga")
        assert not result.ok
        assert result.reason == ReasonCode.AFTER_PHOTOS_REQUIRED
        assert reports.get(report.id).status == ReportStatus.IN_PROGRESS

    async def test_reporter_cannot_close_before_verifying(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        await service.add_after_photos(report.id, "olga", ["https://img/fixed.jpg"])
        assert (await service.submit_for_verification(report.id, "olga")).ok
        result = await service.close(report.id, "rita")
        assert result.reason == ReasonCode.INVALID_CURRENT_STATUS
        assert reports.get(report.id).status == ReportStatus.AWAITING_VERIFICATION

    async def test_full_lifecycle(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        photos = await service.add_after_photos(report.id, "olga", ["https://img/a.jpg", " "])
        assert photos.ok
        assert len(photos.report.photos_after) == 1
        assert (await service.submit_for_verification(report.id, "olga")).ok
        assert (await service.verify(report.id, "rita")).ok
        closed = await service.close(report.id, "rita")
        assert closed.ok
        stored = reports.get(report.id)
        assert stored.status == ReportStatus.CLOSED
        assert len(stored.history) == 7

    async def test_reporter_must_own_report(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        await service.add_after_photos(report.id, "olga", ["https://img/fixed.jpg"])
        assert (await service.submit_for_verification(report.id, "olga")).ok
        with pytest.raises(PermissionError):
            await service.verify(report.id, "ron")
        stored = reports.get(report.id)
        assert stored.status == ReportStatus.AWAITING_VERIFICATION
        assert len(stored.history) == 5
        assert stored.version == 6

    async def test_misroute_records_reason(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        result = await service.misroute(report.id, "olga", "  needs the water board ")
        assert result.ok
        assert reports.get(report.id).misroute_reason == "needs the water board"

    async def test_admin_override(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        result = await service.set_status(report.id, "closed", "ada")
        assert result.ok
        assert result.from_status == ReportStatus.IN_PROGRESS

    async def test_unknown_report(self, directory, reports, city):
        with pytest.raises(ReportNotFoundError):
            await _service(directory, reports).set_status("missing", "closed", "ada")

    async def test_rejection_does_not_write(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        before = reports.get(report.id)
        await service.start_work(report.id, "bea")
        assert reports.get(report.id) == before

    async def test_soft_delete_then_frozen(self, directory, reports, city):
        service = _service(directory, reports)
        created = await service.create_report("rita", title="t", description="d")
        assert (await service.soft_delete(created.report.id, "rita")).ok
        result = await service.set_status(created.report.id, "submitted", "ada")
        assert result.reason == ReasonCode.CANNOT_MODIFY_DELETED


class TestConcurrency:
    async def test_conflict_is_retried_on_fresh_copy(self, directory, city):
        reports = FlakyReportStore(conflicts=1)
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        assert reports.attempts == 2
        stored = reports.get(report.id)
        assert stored.status == ReportStatus.IN_PROGRESS
        assert [e.action for e in stored.history][-1] == "status:assigned->in_progress"
        assert len(stored.history) == 3

    async def test_gives_up_after_retries(self, directory, city):
        reports = FlakyReportStore(conflicts=0)
        service = _service(directory, reports, config=LifecycleConfig(max_conflict_retries=1))
        created = await service.create_report(
            "rita", title="t", description="d", category_id=city["roads"].id
        )
        reports.conflicts = 5
        with pytest.raises(ConcurrencyConflictError):
            await service.start_work(created.report.id, "olga")
        assert reports.attempts == 2
        assert reports.get(created.report.id).status == ReportStatus.ASSIGNED


class TestNotifications:
    async def test_assignment_notifies_reporter_and_officer(
        self, directory, reports, city, notifications
    ):
        service = _service(directory, reports, notifications)
        result = await service.create_report(
            "rita", title="Pothole", description="x", category_id=city["roads"].id
        )
        await service.dispatcher.flush()
        assert [e.type for e in result.events] == [NotificationType.ASSIGNED]
        assert {n.user_id for n in notifications.list_all()} == {"rita", "olga"}
        assert notifications.list_for_user("olga")[0].message == "A report was assigned to Olga."

    async def test_misroute_notifies_reporter_and_admins(
        self, directory, reports, city, notifications
    ):
        service = _service(directory, reports, notifications)
        report = await _in_progress(service, city)
        await service.dispatcher.flush()
        before = notifications.count
        await service.misroute(report.id, "olga", "wrong dept")
        await service.dispatcher.flush()
        new = [n for n in notifications.list_all()][before:]
        assert {n.user_id for n in new} == {"rita", "ada", "sam"}
        assert new[0].message == "Your report was marked misrouted: wrong dept."

    async def test_start_work_sends_nothing(self, directory, reports, city, notifications):
        service = _service(directory, reports, notifications)
        created = await service.create_report(
            "rita", title="t", description="d", category_id=city["roads"].id
        )
        result = await service.start_work(created.report.id, "olga", dispatch=False)
        assert result.events == []

    async def test_dispatch_false_returns_events_without_posting(
        self, directory, reports, city, notifications
    ):
        service = _service(directory, reports, notifications)
        result = await service.create_report(
            "rita", title="t", description="d", category_id=city["roads"].id, dispatch=False
        )
        assert service.dispatcher.pending == 0
        assert len(result.events) == 1
        assert notifications.count == 0

    async def test_broken_sink_does_not_affect_transition(self, directory, reports, city):
        class BrokenSink:
            async def notify(self, user_ids, event_type, payload, report_id=None) -> int:
                raise ConnectionError("smtp down")

        dispatcher = NotificationDispatcher(BrokenSink(), directory)
        service = ReportService(reports, directory, dispatcher=dispatcher)
        result = await service.create_report(
            "rita", title="t", description="d", category_id=city["roads"].id
        )
        await dispatcher.flush()
        assert result.report.status == ReportStatus.ASSIGNED


class TestAuditAndMetrics:
    async def test_mutations_are_audited(self, directory, reports, city, audit):
        service = _service(directory, reports, audit=audit)
        report = await _in_progress(service, city)
        events = audit.query(resource=f"report:{report.id}")
        assert [e.action for e in events] == ["report.created", "report.status_changed"]
        assert events[1].details["to"] == "in_progress"
        assert audit.verify_chain()

    async def test_rejections_are_not_audited(self, directory, reports, city, audit):
        service = _service(directory, reports, audit=audit)
        report = await _in_progress(service, city)
        await service.close(report.id, "rita")
        assert len(audit.query(resource=f"report:{report.id}")) == 2

    async def test_counters(self, directory, reports, city):
        service = _service(directory, reports)
        report = await _in_progress(service, city)
        await service.submit_for_verification(report.id, "olga")
        await service.create_report("rita", title="t", description="d")
        m = service.metrics
        assert m.get("report_created", status="assigned") == 1
        assert m.get("report_created", status="submitted") == 1
        assert m.get("auto_assigned") == 1
        assert m.get("status_transition", to="in_progress") == 1
        assert m.get("transition_rejected", reason="after_photos_required") == 1


class TestBulk:
    async def test_each_report_gets_an_outcome(self, directory, reports, city):
        service = _service(directory, reports)
        a = (await service.create_report("rita", title="a", description="a")).report
        b = (await service.create_report("rita", title="b", description="b")).report
        await service.set_status(b.id, "closed", "ada")

        outcomes, _ = await service.bulk_set_status([a.id, "missing", b.id, a.id], "closed", "ada")
        assert [(o.report_id, o.ok, o.error) for o in outcomes] == [
            (a.id, True, None),
            ("missing", False, "not_found"),
            (b.id, False, "invalid_current_status"),
        ]

    async def test_requires_admin(self, directory, reports, city):
        with pytest.raises(PermissionError):
            await _service(directory, reports).bulk_set_status(["x"], "closed", "olga")


class TestViews:
    async def test_visibility(self, directory, reports, city):
        service = _service(directory, reports)
        report = (await service.create_report(
            "rita", title="t", description="d", category_id=city["roads"].id
        )).report
        assert (await service.get_report(report.id, "rita")).id == report.id
        assert (await service.get_report(report.id, "olga")).id == report.id
        assert (await service.get_report(report.id, "ada")).id == report.id
        with pytest.raises(PermissionError):
            await service.get_report(report.id, "ron")
        with pytest.raises(PermissionError):
            await service.get_report(report.id, "bea")

    async def test_list_reports_pagination_and_deleted(self, directory, reports, city):
        service = _service(directory, reports)
        ids = []
        for i in range(5):
            ids.append((await service.create_report("rita", title=f"r{i}", description="d")).report.id)
        await service.soft_delete(ids[0], "ada")

        page = await service.list_reports(page=1, limit=3)
        assert page.total == 4
        assert len(page.items) == 3
        assert page.total_pages == 2
        assert (await service.list_reports(status="deleted")).total == 1
        assert (await service.list_reports(limit=1000)).limit == 100
        with pytest.raises(ValueError):
            await service.list_reports(status="bogus")

    async def test_officer_dashboard_and_assigned_list(self, directory, reports, city):
        service = _service(directory, reports)
        first = await _in_progress(service, city)
        await service.create_report("rita", title="t", description="d", category_id=city["roads"].id)
        closed = (await service.create_report(
            "rita", title="c", description="d", category_id=city["roads"].id
        )).report
        await service.set_status(closed.id, "closed", "ada")

        dashboard = await service.officer_dashboard("olga")
        assert dashboard["counts"]["assigned"] == 1
        assert dashboard["counts"]["in_progress"] == 1
        assert dashboard["active_in_progress"] == 1

        assigned = await service.list_assigned("olga")
        assert assigned.total == 2
        assert first.id in {r.id for r in assigned.items}
        assert (await service.list_assigned("olga", status="closed")).total == 1

    async def test_suggest_category(self, directory, reports, city):
        service = _service(directory, reports, classifier=StaticClassifier("Roads"))
        suggestion = await service.suggest_category("pothole on main street")
        assert suggestion.category.id == city["roads"].id
        assert suggestion.department.name == "Public Works"
        assert [u.id for u in suggestion.officers] == ["olga"]

    async def test_suggest_category_without_classifier(self, directory, reports, city):
        suggestion = await _service(directory, reports).suggest_category("anything")
        assert suggestion.category is None
