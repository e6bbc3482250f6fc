"""In-memory user directory with departments and categories."""

from __future__ import annotations

from civictrack.core.types import ADMIN_ROLES, UserRole
from civictrack.directory.models import Category, Department, OfficerCandidate, User


class DirectoryStore:
    """In-memory store for users, departments and categories.

    Serves as the officer directory for auto-assignment. Insertion order is
    preserved for every listing.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._departments: dict[str, Department] = {}
        self._categories: dict[str, Category] = {}

    # -- Users --

    def save_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def list_admins(self) -> list[User]:
        return [u for u in self._users.values() if u.role in ADMIN_ROLES]

    # -- Officer directory --

    def list_active_officers_by_department(self, department_id: str) -> list[OfficerCandidate]:
        """Officers directly linked to the department, in link order."""
        dept = self._departments.get(department_id)
        if dept is None:
            return []
        result = []
        for oid in dept.officer_ids:
            user = self._users.get(oid)
            if user and user.role == UserRole.OFFICER and user.active:
                result.append(OfficerCandidate.from_user(user))
        return result

    def list_active_officers_by_department_label(self, name: str) -> list[OfficerCandidate]:
        """Active officers whose own department label equals ``name``."""
        return [
            OfficerCandidate.from_user(u)
            for u in self._users.values()
            if u.role == UserRole.OFFICER and u.active and u.department == name
        ]

    # -- Departments --

    def save_department(self, department: Department) -> Department:
        self._departments[department.id] = department
        return department

    def get_department(self, department_id: str) -> Department | None:
        return self._departments.get(department_id)

    def find_department_by_name(self, name: str) -> Department | None:
        for dept in self._departments.values():
            if dept.name == name and not dept.is_deleted:
                return dept
        return None

    def find_department_for_category(self, category_id: str) -> Department | None:
        for dept in self._departments.values():
            if category_id in dept.category_ids and not dept.is_deleted:
                return dept
        return None

    def list_departments(self) -> list[Department]:
        return [d for d in self._departments.values() if not d.is_deleted]

    # -- Categories --

    def save_category(self, category: Category) -> Category:
        self._categories[category.id] = category
        return category

    def get_category(self, category_id: str) -> Category | None:
        return self._categories.get(category_id)

    def list_categories(self) -> list[Category]:
        return [c for c in self._categories.values() if not c.is_deleted]
