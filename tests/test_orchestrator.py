"""Tests for the lifecycle orchestrator."""

from __future__ import annotations

from civictrack.core.types import ReasonCode, ReportStatus, UserRole
from civictrack.lifecycle.guard import Actor
from civictrack.lifecycle.orchestrator import (
    AUTO_ASSIGNED,
    CREATED,
    CREATED_AUTO_ASSIGNED,
    SOFT_DELETED,
    LifecycleOrchestrator,
)
from civictrack.reports.models import Photo, Report
from tests.conftest import ADMIN, OFFICER, REPORTER, make_report


def _draft() -> Report:
    return Report(title="Broken light", description="Street light out", reporter_id=REPORTER.id)


class TestCreation:
    def test_unassigned_creation(self):
        report = _draft()
        result = LifecycleOrchestrator().record_creation(report, REPORTER)
        assert result.ok
        assert report.status == ReportStatus.SUBMITTED
        assert report.assigned_to == []
        assert [e.action for e in report.history] == [CREATED]
        assert report.history[0].actor_id == REPORTER.id

    def test_auto_assigned_creation_has_two_entries(self):
        report = _draft()
        result = LifecycleOrchestrator().record_creation(report, REPORTER, assignee_id="bea")
        assert result.to_status == ReportStatus.ASSIGNED
        assert report.assigned_to == ["bea"]
        first, second = report.history
        assert (first.actor_id, first.actor_role, first.action) == (
            REPORTER.id, UserRole.REPORTER, CREATED_AUTO_ASSIGNED,
        )
        assert (second.actor_id, second.actor_role, second.action) == (
            "bea", UserRole.OFFICER, AUTO_ASSIGNED,
        )
        assert result.entries == report.history


class TestTransition:
    def test_applies_updates_and_appends_one_entry(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        before = list(report.history)
        result = LifecycleOrchestrator().transition(report, "misrouted", OFFICER, reason=" wrong ")
        assert result.ok and result.status_changed
        assert report.status == ReportStatus.MISROUTED
        assert report.misroute_reason == "wrong"
        assert report.history[: len(before)] == before
        assert len(report.history) == len(before) + 1
        assert report.history[-1].action == "status:in_progress->misrouted"

    def test_rejection_leaves_report_untouched(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        snapshot = report.model_dump()
        result = LifecycleOrchestrator().transition(report, "awaiting_verification", OFFICER)
        assert not result.ok
        assert result.reason == ReasonCode.AFTER_PHOTOS_REQUIRED
        assert report.model_dump() == snapshot

    def test_history_grows_across_lifecycle(self):
        orch = LifecycleOrchestrator()
        report = make_report(ReportStatus.ASSIGNED, assigned_to=[OFFICER.id])
        assert orch.transition(report, "in_progress", OFFICER).ok
        seen = list(report.history)
        assert orch.add_after_photos(report, OFFICER, [Photo(url="https://x/1.jpg")]).ok
        assert orch.transition(report, "awaiting_verification", OFFICER).ok
        assert orch.transition(report, "verified", REPORTER).ok
        assert orch.transition(report, "closed", REPORTER).ok
        assert report.history[: len(seen)] == seen
        assert [e.action for e in report.history] == [
            "status:assigned->in_progress",
            "added_after_photos:1",
            "status:in_progress->awaiting_verification",
            "status:awaiting_verification->verified",
            "status:verified->closed",
        ]


class TestAfterPhotos:
    def test_assignee_can_add(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        result = LifecycleOrchestrator().add_after_photos(
            report, OFFICER, [Photo(url="https://x/a.jpg"), Photo(url="https://x/b.jpg")]
        )
        assert result.ok
        assert not result.status_changed
        assert len(report.photos_after) == 2
        assert report.status == ReportStatus.IN_PROGRESS

    def test_non_assignee_rejected(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=["bea"])
        result = LifecycleOrchestrator().add_after_photos(report, OFFICER, [Photo(url="u")])
        assert result.reason == ReasonCode.NOT_ASSIGNED

    def test_admin_can_add(self):
        report = make_report(ReportStatus.IN_PROGRESS)
        assert LifecycleOrchestrator().add_after_photos(report, ADMIN, [Photo(url="u")]).ok

    def test_limit(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id], photos_after=2)
        orch = LifecycleOrchestrator(max_after_photos=3)
        result = orch.add_after_photos(report, OFFICER, [Photo(url="a"), Photo(url="b")])
        assert result.reason == ReasonCode.AFTER_PHOTOS_LIMIT
        assert len(report.photos_after) == 2
        assert orch.add_after_photos(report, OFFICER, [Photo(url="a")]).ok

    def test_deleted_report(self):
        report = make_report(ReportStatus.DELETED, assigned_to=[OFFICER.id])
        result = LifecycleOrchestrator().add_after_photos(report, OFFICER, [Photo(url="u")])
        assert result.reason == ReasonCode.CANNOT_MODIFY_DELETED


class TestSoftDelete:
    def test_admin_deletes(self):
        report = make_report(ReportStatus.IN_PROGRESS)
        result = LifecycleOrchestrator().soft_delete(report, ADMIN)
        assert result.ok
        assert report.status == ReportStatus.DELETED
        assert report.history[-1].action == SOFT_DELETED

    def test_reporter_withdraws_submitted_report(self):
        report = make_report(ReportStatus.SUBMITTED)
        assert LifecycleOrchestrator().soft_delete(report, REPORTER).ok

    def test_reporter_cannot_delete_after_work_starts(self):
        report = make_report(ReportStatus.IN_PROGRESS)
        assert LifecycleOrchestrator().soft_delete(report, REPORTER).reason == ReasonCode.FORBIDDEN

    def test_other_reporter_cannot_delete(self):
        report = make_report(ReportStatus.SUBMITTED, reporter_id="someone")
        assert LifecycleOrchestrator().soft_delete(report, REPORTER).reason == ReasonCode.FORBIDDEN

    def test_officer_cannot_delete(self):
        report = make_report(ReportStatus.ASSIGNED, assigned_to=[OFFICER.id])
        assert LifecycleOrchestrator().soft_delete(report, OFFICER).reason == ReasonCode.FORBIDDEN

    def test_twice(self):
        report = make_report(ReportStatus.SUBMITTED)
        orch = LifecycleOrchestrator()
        assert orch.soft_delete(report, ADMIN).ok
        assert orch.soft_delete(report, ADMIN).reason == ReasonCode.CANNOT_MODIFY_DELETED
        assert orch.transition(report, "submitted", Actor(id="ada", role="admin")).reason == (
            ReasonCode.CANNOT_MODIFY_DELETED
        )
