"""Core type definitions shared across all CivicTrack modules."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ReportStatus(StrEnum):
    """Closed set of report lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    CLOSED = "closed"
    MISROUTED = "misrouted"
    DELETED = "deleted"

    @classmethod
    def parse(cls, value: str) -> ReportStatus | None:
        """Return the matching status, or None for values outside the enum."""
        try:
            return cls(value)
        except ValueError:
            return None


# A report counts toward an officer's workload while in one of these states.
OPEN_STATUSES: frozenset[ReportStatus] = frozenset(
    {
        ReportStatus.ASSIGNED,
        ReportStatus.IN_PROGRESS,
        ReportStatus.AWAITING_VERIFICATION,
    }
)


class UserRole(StrEnum):
    REPORTER = "reporter"
    OFFICER = "officer"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


ADMIN_ROLES: frozenset[str] = frozenset({UserRole.ADMIN, UserRole.SUPERADMIN})


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ReasonCode(StrEnum):
    """Stable rejection codes returned to clients.

    Clients branch on these values, never on message text.
    """

    NOT_ASSIGNED = "not_assigned"
    INVALID_CURRENT_STATUS = "invalid_current_status"
    AFTER_PHOTOS_REQUIRED = "after_photos_required"
    REASON_REQUIRED = "reason_required"
    FORBIDDEN_TARGET_STATUS = "forbidden_target_status"
    UNKNOWN_TARGET_STATUS = "unknown_target_status"
    CANNOT_MODIFY_DELETED = "cannot_modify_deleted"
    UNKNOWN_ROLE = "unknown_role"
    AFTER_PHOTOS_LIMIT = "after_photos_limit"
    FORBIDDEN = "forbidden"


class NotificationType(StrEnum):
    ASSIGNED = "report.assigned"
    AWAITING_VERIFICATION = "report.awaiting_verification"
    MISROUTED = "report.misrouted"
    VERIFIED = "report.verified"
    CLOSED = "report.closed"


class DataClassification(StrEnum):
    """Sensitivity of an audited resource."""

    PUBLIC = "public"
    INTERNAL = "internal"
    SENSITIVE = "sensitive"


class AuditEvent(BaseModel):
    """Immutable audit log entry."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    actor: str
    actor_role: str
    action: str
    resource: str
    classification: DataClassification = DataClassification.INTERNAL
    details: dict[str, Any] = Field(default_factory=dict)


class HealthStatus(BaseModel):
    """Health check response for any service."""

    service: str
    healthy: bool
    latency_ms: float | None = None
    details: dict[str, Any] = Field(default_factory=dict)
