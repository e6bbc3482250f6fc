"""Role-gated transition guard for the report status state machine.

``decide`` is pure: it inspects a report and a requested transition and
returns a :class:`TransitionDecision`. It never mutates or persists
anything. Rejections are returned, never raised, and always carry a
stable :class:`ReasonCode`.

Rules per actor role:

=============  ======================  =========================================
Role           Target                  Preconditions
=============  ======================  =========================================
officer        in_progress             assigned; current in submitted/assigned
officer        awaiting_verification   assigned; current in_progress; after-photos
officer        misrouted               assigned; current in_progress; reason given
admin          any status              current differs from target
reporter       verified                current awaiting_verification
reporter       closed                  current verified
=============  ======================  =========================================

A deleted report is absorbing for every role.
"""

from __future__ import annotations

import abc
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from civictrack.core.types import ReasonCode, ReportStatus, UserRole
from civictrack.reports.models import Report


class Actor(BaseModel):
    """Who is requesting a lifecycle mutation.

    ``role`` is a plain string so that roles outside :class:`UserRole` can
    reach the guard and be rejected there.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    role: str


class TransitionDecision(BaseModel):
    """Outcome of a guard decision.

    When ``allowed`` the caller must apply ``updates`` to the report and
    append one history entry with ``history_action``.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: ReasonCode | None = None
    from_status: ReportStatus | None = None
    to_status: ReportStatus | None = None
    updates: dict[str, Any] = Field(default_factory=dict)

    @property
    def history_action(self) -> str:
        return f"status:{self.from_status}->{self.to_status}"

    @classmethod
    def reject(cls, reason: ReasonCode, current: ReportStatus | None = None) -> TransitionDecision:
        return cls(allowed=False, reason=reason, from_status=current)

    @classmethod
    def allow(
        cls,
        current: ReportStatus,
        target: ReportStatus,
        **extra: Any,
    ) -> TransitionDecision:
        return cls(
            allowed=True,
            from_status=current,
            to_status=target,
            updates={"status": target, **extra},
        )


class RolePolicy(abc.ABC):
    """Transition rules for one family of roles."""

    @abc.abstractmethod
    def decide(
        self,
        report: Report,
        target: str,
        actor: Actor,
        reason: str | None = None,
    ) -> TransitionDecision:
        """Decide whether ``actor`` may move ``report`` to ``target``."""


class OfficerPolicy(RolePolicy):
    def decide(
        self,
        report: Report,
        target: str,
        actor: Actor,
        reason: str | None = None,
    ) -> TransitionDecision:
        current = report.status
        wanted = ReportStatus.parse(target)
        assigned = report.is_assigned_to(actor.id)

        if wanted == ReportStatus.IN_PROGRESS:
            if not assigned:
                return TransitionDecision.reject(ReasonCode.NOT_ASSIGNED, current)
            if current not in (ReportStatus.SUBMITTED, ReportStatus.ASSIGNED):
                return TransitionDecision.reject(ReasonCode.INVALID_CURRENT_STATUS, current)
            return TransitionDecision.allow(current, wanted)

        if wanted == ReportStatus.AWAITING_VERIFICATION:
            if not assigned:
                return TransitionDecision.reject(ReasonCode.NOT_ASSIGNED, current)
            if current != ReportStatus.IN_PROGRESS:
                return TransitionDecision.reject(ReasonCode.INVALID_CURRENT_STATUS, current)
            if not report.photos_after:
                return TransitionDecision.reject(ReasonCode.AFTER_PHOTOS_REQUIRED, current)
            return TransitionDecision.allow(current, wanted)

        if wanted == ReportStatus.MISROUTED:
            if not assigned:
                return TransitionDecision.reject(ReasonCode.NOT_ASSIGNED, current)
            if current != ReportStatus.IN_PROGRESS:
                return TransitionDecision.reject(ReasonCode.INVALID_CURRENT_STATUS, current)
            trimmed = (reason or "").strip()
            if not trimmed:
                return TransitionDecision.reject(ReasonCode.REASON_REQUIRED, current)
            return TransitionDecision.allow(current, wanted, misroute_reason=trimmed)

        return TransitionDecision.reject(ReasonCode.FORBIDDEN_TARGET_STATUS, current)


class AdminPolicy(RolePolicy):
    """Administrators may set any status except the one already in place."""

    def decide(
        self,
        report: Report,
        target: str,
        actor: Actor,
        reason: str | None = None,
    ) -> TransitionDecision:
        current = report.status
        wanted = ReportStatus.parse(target)
        if wanted is None:
            return TransitionDecision.reject(ReasonCode.UNKNOWN_TARGET_STATUS, current)
        if wanted == current:
            return TransitionDecision.reject(ReasonCode.INVALID_CURRENT_STATUS, current)
        return TransitionDecision.allow(current, wanted)


class ReporterPolicy(RolePolicy):
    # target -> required current status
    _CONFIRMATIONS = {
        ReportStatus.VERIFIED: ReportStatus.AWAITING_VERIFICATION,
        ReportStatus.CLOSED: ReportStatus.VERIFIED,
    }

    def decide(
        self,
        report: Report,
        target: str,
        actor: Actor,
        reason: str | None = None,
    ) -> TransitionDecision:
        current = report.status
        wanted = ReportStatus.parse(target)
        required = self._CONFIRMATIONS.get(wanted) if wanted else None
        if required is None:
            return TransitionDecision.reject(ReasonCode.FORBIDDEN_TARGET_STATUS, current)
        if current != required:
            return TransitionDecision.reject(ReasonCode.INVALID_CURRENT_STATUS, current)
        return TransitionDecision.allow(current, wanted)


_ADMIN = AdminPolicy()

ROLE_POLICIES: dict[str, RolePolicy] = {
    UserRole.OFFICER: OfficerPolicy(),
    UserRole.ADMIN: _ADMIN,
    UserRole.SUPERADMIN: _ADMIN,
    UserRole.REPORTER: ReporterPolicy(),
}


def decide(
    report: Report,
    target: str,
    actor: Actor,
    reason: str | None = None,
) -> TransitionDecision:
    """Decide whether ``actor`` may move ``report`` to ``target``.

    Args:
        report: The report as currently stored.
        target: Requested status value; values outside the enum are rejected.
        actor: The acting user's id and role.
        reason: Free-text reason, required for ``misrouted``.
    """
    if report.status == ReportStatus.DELETED:
        return TransitionDecision.reject(ReasonCode.CANNOT_MODIFY_DELETED, report.status)
    policy = ROLE_POLICIES.get(actor.role)
    if policy is None:
        return TransitionDecision.reject(ReasonCode.UNKNOWN_ROLE, report.status)
    return policy.decide(report, target, actor, reason)
