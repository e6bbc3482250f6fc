"""Tests for the role-gated transition guard."""

from __future__ import annotations

import pytest

from civictrack.core.types import ReasonCode, ReportStatus, UserRole
from civictrack.lifecycle.guard import (
    ROLE_POLICIES,
    Actor,
    AdminPolicy,
    OfficerPolicy,
    ReporterPolicy,
    TransitionDecision,
    decide,
)
from tests.conftest import ADMIN, OFFICER, REPORTER, SUPERADMIN, make_report

ALL_STATUSES = list(ReportStatus)


class TestOfficerRules:
    def test_start_work_from_assigned(self):
        report = make_report(ReportStatus.ASSIGNED, assigned_to=[OFFICER.id])
        d = decide(report, "in_progress", OFFICER)
        assert d.allowed
        assert d.updates == {"status": ReportStatus.IN_PROGRESS}
        assert d.history_action == "status:assigned->in_progress"

    def test_start_work_from_submitted(self):
        report = make_report(ReportStatus.SUBMITTED, assigned_to=[OFFICER.id])
        assert decide(report, "in_progress", OFFICER).allowed

    def test_start_work_not_assigned(self):
        report = make_report(ReportStatus.ASSIGNED, assigned_to=["someone-else"])
        d = decide(report, "in_progress", OFFICER)
        assert not d.allowed
        assert d.reason == ReasonCode.NOT_ASSIGNED

    @pytest.mark.parametrize(
        "current",
        [ReportStatus.DRAFT, ReportStatus.IN_PROGRESS, ReportStatus.AWAITING_VERIFICATION,
         ReportStatus.VERIFIED, ReportStatus.CLOSED, ReportStatus.MISROUTED],
    )
    def test_start_work_wrong_current_status(self, current: ReportStatus):
        report = make_report(current, assigned_to=[OFFICER.id])
        assert decide(report, "in_progress", OFFICER).reason == ReasonCode.INVALID_CURRENT_STATUS

    def test_submit_for_verification_needs_photos(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        d = decide(report, "awaiting_verification", OFFICER)
        assert d.reason == ReasonCode.AFTER_PHOTOS_REQUIRED

    def test_submit_for_verification_with_photos(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id], photos_after=1)
        d = decide(report, "awaiting_verification", OFFICER)
        assert d.allowed
        assert d.to_status == ReportStatus.AWAITING_VERIFICATION

    def test_submit_for_verification_requires_in_progress(self):
        report = make_report(ReportStatus.ASSIGNED, assigned_to=[OFFICER.id], photos_after=2)
        assert (
            decide(report, "awaiting_verification", OFFICER).reason
            == ReasonCode.INVALID_CURRENT_STATUS
        )

    def test_submit_for_verification_not_assigned_checked_first(self):
        report = make_report(ReportStatus.ASSIGNED)
        assert decide(report, "awaiting_verification", OFFICER).reason == ReasonCode.NOT_ASSIGNED

    def test_misroute_sets_trimmed_reason(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        d = decide(report, "misrouted", OFFICER, reason="  belongs to water board \n")
        assert d.allowed
        assert d.updates["misroute_reason"] == "belongs to water board"

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_misroute_requires_reason(self, reason: str | None):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        assert decide(report, "misrouted", OFFICER, reason=reason).reason == ReasonCode.REASON_REQUIRED

    def test_misroute_requires_in_progress(self):
        report = make_report(ReportStatus.ASSIGNED, assigned_to=[OFFICER.id])
        d = decide(report, "misrouted", OFFICER, reason="wrong dept")
        assert d.reason == ReasonCode.INVALID_CURRENT_STATUS

    @pytest.mark.parametrize("target", ["verified", "closed", "assigned", "deleted", "draft", "bogus"])
    def test_other_targets_forbidden(self, target: str):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        assert decide(report, target, OFFICER).reason == ReasonCode.FORBIDDEN_TARGET_STATUS

    def test_multi_assignee_report(self):
        report = make_report(ReportStatus.ASSIGNED, assigned_to=["other", OFFICER.id])
        assert decide(report, "in_progress", OFFICER).allowed


class TestAdminRules:
    @pytest.mark.parametrize("actor", [ADMIN, SUPERADMIN])
    @pytest.mark.parametrize("target", ALL_STATUSES)
    def test_any_status_from_in_progress(self, actor: Actor, target: ReportStatus):
        report = make_report(ReportStatus.IN_PROGRESS)
        d = decide(report, target, actor)
        if target == ReportStatus.IN_PROGRESS:
            assert d.reason == ReasonCode.INVALID_CURRENT_STATUS
        else:
            assert d.allowed
            assert d.to_status == target

    def test_unknown_target(self):
        report = make_report(ReportStatus.SUBMITTED)
        assert decide(report, "reopened", ADMIN).reason == ReasonCode.UNKNOWN_TARGET_STATUS

    def test_admin_needs_no_assignment(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=["olga"])
        assert decide(report, "closed", ADMIN).allowed


class TestReporterRules:
    def test_verify_from_awaiting_verification(self):
        report = make_report(ReportStatus.AWAITING_VERIFICATION)
        assert decide(report, "verified", REPORTER).allowed

    def test_close_from_verified(self):
        report = make_report(ReportStatus.VERIFIED)
        d = decide(report, "closed", REPORTER)
        assert d.allowed
        assert d.history_action == "status:verified->closed"

    def test_close_while_awaiting_verification(self):
        report = make_report(ReportStatus.AWAITING_VERIFICATION)
        assert decide(report, "closed", REPORTER).reason == ReasonCode.INVALID_CURRENT_STATUS

    @pytest.mark.parametrize("target", ["in_progress", "misrouted", "deleted", "submitted", "nope"])
    def test_other_targets_forbidden(self, target: str):
        report = make_report(ReportStatus.AWAITING_VERIFICATION)
        assert decide(report, target, REPORTER).reason == ReasonCode.FORBIDDEN_TARGET_STATUS


class TestDeletedIsAbsorbing:
    @pytest.mark.parametrize("actor", [OFFICER, ADMIN, SUPERADMIN, REPORTER, Actor(id="x", role="janitor")])
    @pytest.mark.parametrize("target", [*ALL_STATUSES, "unknown"])
    def test_no_way_out(self, actor: Actor, target: str):
        report = make_report(ReportStatus.DELETED, assigned_to=[OFFICER.id], photos_after=1)
        d = decide(report, target, actor, reason="because")
        assert not d.allowed
        assert d.reason in (ReasonCode.CANNOT_MODIFY_DELETED, ReasonCode.FORBIDDEN_TARGET_STATUS)


class TestDispatch:
    def test_unknown_role(self):
        report = make_report(ReportStatus.SUBMITTED)
        assert decide(report, "closed", Actor(id="x", role="auditor")).reason == ReasonCode.UNKNOWN_ROLE

    def test_policy_per_role(self):
        assert isinstance(ROLE_POLICIES[UserRole.OFFICER], OfficerPolicy)
        assert isinstance(ROLE_POLICIES[UserRole.REPORTER], ReporterPolicy)
        assert ROLE_POLICIES[UserRole.ADMIN] is ROLE_POLICIES[UserRole.SUPERADMIN]
        assert isinstance(ROLE_POLICIES[UserRole.ADMIN], AdminPolicy)

    def test_decide_is_pure(self):
        report = make_report(ReportStatus.IN_PROGRESS, assigned_to=[OFFICER.id])
        before = report.model_dump()
        decide(report, "misrouted", OFFICER, reason="elsewhere")
        assert report.model_dump() == before


class TestIdempotence:
    @pytest.mark.parametrize(
        "actor,status",
        [
            (OFFICER, ReportStatus.IN_PROGRESS),
            (OFFICER, ReportStatus.AWAITING_VERIFICATION),
            (OFFICER, ReportStatus.MISROUTED),
            (REPORTER, ReportStatus.VERIFIED),
            (REPORTER, ReportStatus.CLOSED),
            (ADMIN, ReportStatus.SUBMITTED),
        ],
    )
    def test_target_equal_to_current_is_rejected(self, actor: Actor, status: ReportStatus):
        report = make_report(status, assigned_to=[OFFICER.id], photos_after=1)
        d = decide(report, status, actor, reason="again")
        assert not d.allowed
        assert d.reason in (ReasonCode.INVALID_CURRENT_STATUS, ReasonCode.FORBIDDEN_TARGET_STATUS)


def test_reject_helper_carries_current_status():
    d = TransitionDecision.reject(ReasonCode.NOT_ASSIGNED, ReportStatus.ASSIGNED)
    assert d.from_status == ReportStatus.ASSIGNED
    assert d.updates == {}
