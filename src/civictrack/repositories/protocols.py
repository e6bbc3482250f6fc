"""Protocol definitions for all repository interfaces.

Each protocol mirrors the public methods of the corresponding in-memory
store class exactly, enabling both sync (in-memory) and async (Postgres)
implementations to satisfy the same interface.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from civictrack.core.types import ReportStatus
from civictrack.directory.models import Category, Department, OfficerCandidate, User
from civictrack.notifications.models import Notification
from civictrack.reports.models import Report


@runtime_checkable
class ReportRepository(Protocol):
    """Protocol for report storage.

    ``save`` must be a conditional write on ``Report.version`` and raise
    ``ConcurrencyConflictError`` when the stored version has moved on.
    """

    def get(self, report_id: str) -> Report | None: ...

    def find_many(
        self,
        *,
        reporter_id: str | None = None,
        assignee_id: str | None = None,
        statuses: Iterable[str] | None = None,
        exclude_statuses: Iterable[str] | None = None,
        search: str | None = None,
    ) -> list[Report]: ...

    def count_open_by_assignee(
        self, officer_ids: Iterable[str], open_statuses: Iterable[ReportStatus]
    ) -> dict[str, int]: ...

    def save(self, report: Report) -> Report: ...


@runtime_checkable
class DirectoryRepository(Protocol):
    """Protocol for the user directory, departments and categories."""

    def save_user(self, user: User) -> User: ...

    def get_user(self, user_id: str) -> User | None: ...

    def list_admins(self) -> list[User]: ...

    def list_active_officers_by_department(
        self, department_id: str
    ) -> list[OfficerCandidate]: ...

    def list_active_officers_by_department_label(
        self, name: str
    ) -> list[OfficerCandidate]: ...

    def save_department(self, department: Department) -> Department: ...

    def get_department(self, department_id: str) -> Department | None: ...

    def find_department_by_name(self, name: str) -> Department | None: ...

    def find_department_for_category(self, category_id: str) -> Department | None: ...

    def list_departments(self) -> list[Department]: ...

    def save_category(self, category: Category) -> Category: ...

    def get_category(self, category_id: str) -> Category | None: ...

    def list_categories(self) -> list[Category]: ...


@runtime_checkable
class NotificationRepository(Protocol):
    """Protocol for notification storage."""

    def save(self, notification: Notification) -> Notification: ...

    def get(self, notification_id: str) -> Notification | None: ...

    def list_for_user(self, user_id: str, limit: int = 100) -> list[Notification]: ...

    def mark_read(self, user_id: str, ids: Iterable[str] | None = None) -> int: ...

    def list_all(self) -> list[Notification]: ...
