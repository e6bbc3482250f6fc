"""Shared test fixtures and helpers."""

from __future__ import annotations

from typing import Any

import pytest

from civictrack.core.types import ReportStatus, UserRole, UserStatus
from civictrack.directory.models import Category, Department, User
from civictrack.directory.store import DirectoryStore
from civictrack.lifecycle.guard import Actor
from civictrack.reports.models import Photo, Report
from civictrack.reports.store import ReportStore


def add_user(
    directory: DirectoryStore,
    name: str,
    role: UserRole = UserRole.REPORTER,
    *,
    department: str | None = None,
    status: UserStatus = UserStatus.ACTIVE,
) -> User:
    return directory.save_user(
        User(id=name.lower(), name=name, role=role, department=department, status=status)
    )


def add_department(
    directory: DirectoryStore,
    name: str,
    officers: list[User] | None = None,
    categories: list[Category] | None = None,
) -> Department:
    return directory.save_department(
        Department(
            id=f"dept-{name.lower()}",
            name=name,
            officer_ids=[o.id for o in officers or []],
            category_ids=[c.id for c in categories or []],
        )
    )


def add_category(directory: DirectoryStore, name: str, keywords: list[str] | None = None) -> Category:
    return directory.save_category(
        Category(id=f"cat-{name.lower()}", name=name, keywords=keywords or [])
    )


def make_report(
    status: ReportStatus = ReportStatus.SUBMITTED,
    *,
    title: str = "Pothole on Elm Street",
    description: str = "Large pothole near the school crossing",
    reporter_id: str = "rita",
    assigned_to: list[str] | None = None,
    photos_after: int = 0,
    **extra: Any,
) -> Report:
    return Report(
        title=title,
        description=description,
        reporter_id=reporter_id,
        status=status,
        assigned_to=assigned_to or [],
        photos_after=[Photo(url=f"https://img.example.org/after-{i}.jpg") for i in range(photos_after)],
        **extra,
    )


def seed_open_reports(store: ReportStore, officer_id: str, count: int) -> None:
    """Give ``officer_id`` ``count`` open reports."""
    for _ in range(count):
        store.save(make_report(ReportStatus.ASSIGNED, assigned_to=[officer_id]))


OFFICER = Actor(id="olga", role=UserRole.OFFICER)
ADMIN = Actor(id="ada", role=UserRole.ADMIN)
SUPERADMIN = Actor(id="sam", role=UserRole.SUPERADMIN)
REPORTER = Actor(id="rita", role=UserRole.REPORTER)


@pytest.fixture
def directory() -> DirectoryStore:
    return DirectoryStore()


@pytest.fixture
def reports() -> ReportStore:
    return ReportStore()
