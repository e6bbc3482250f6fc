"""Access policies for reports."""

from __future__ import annotations

from civictrack.core.types import ADMIN_ROLES
from civictrack.directory.models import User
from civictrack.reports.models import Report


def can_view_report(user: User | None, report: Report | None) -> bool:
    """Admins see everything; others see reports they filed or are assigned to."""
    if user is None or report is None:
        return False
    if user.role in ADMIN_ROLES:
        return True
    if report.reporter_id == user.id:
        return True
    return report.is_assigned_to(user.id)
