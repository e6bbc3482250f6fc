"""SQLAlchemy ORM models for all persistent tables."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from civictrack.db.base import Base


def _jsonb() -> type:
    """Return JSONB for Postgres, plain JSON for SQLite."""
    return JSON().with_variant(PG_JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportRow(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(512))
    description: Mapped[str] = mapped_column(Text, default="")
    reporter_id: Mapped[str] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(32), default="draft")
    category_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    department: Mapped[str | None] = mapped_column(String(256), nullable=True)
    misroute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    photos_before: Mapped[list] = mapped_column(_jsonb(), default=list)
    photos_after: Mapped[list] = mapped_column(_jsonb(), default=list)
    history: Mapped[list] = mapped_column(_jsonb(), default=list)
    version: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    assignees: Mapped[list[ReportAssigneeRow]] = relationship(
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportAssigneeRow.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_reports_status", "status"),
        Index("ix_reports_reporter_id", "reporter_id"),
        Index("ix_reports_created_at", "created_at"),
    )


class ReportAssigneeRow(Base):
    """One row per (report, officer); ``position`` keeps assignment order."""

    __tablename__ = "report_assignees"

    report_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("reports.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    report: Mapped[ReportRow] = relationship(back_populates="assignees")

    __table_args__ = (
        Index("ix_report_assignees_user_id", "user_id"),
    )


# ---------------------------------------------------------------------------
# Directory: Users, Departments & Categories
# ---------------------------------------------------------------------------


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(256))
    email: Mapped[str] = mapped_column(String(256), default="")
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str] = mapped_column(String(32), default="reporter")
    status: Mapped[str] = mapped_column(String(16), default="active")
    department: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_users_role", "role"),
        Index("ix_users_department", "department"),
    )


class DepartmentRow(Base):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[str] = mapped_column(Text, default="")
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    officers: Mapped[list[DepartmentOfficerRow]] = relationship(
        cascade="all, delete-orphan",
        order_by="DepartmentOfficerRow.position",
        lazy="selectin",
    )
    categories: Mapped[list[DepartmentCategoryRow]] = relationship(
        cascade="all, delete-orphan",
        order_by="DepartmentCategoryRow.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_departments_name", "name"),
    )


class DepartmentOfficerRow(Base):
    __tablename__ = "department_officers"

    department_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("departments.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)


class DepartmentCategoryRow(Base):
    __tablename__ = "department_categories"

    department_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("departments.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index("ix_department_categories_category_id", "category_id"),
    )


class CategoryRow(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(256))
    slug: Mapped[str] = mapped_column(String(256), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    keywords: Mapped[list] = mapped_column(_jsonb(), default=list)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationRow(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(64))
    report_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(String(512), default="")
    message: Mapped[str] = mapped_column(Text, default="")
    payload: Mapped[dict] = mapped_column(_jsonb(), default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_notifications_user_id", "user_id"),
    )


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditEventRow(Base):
    __tablename__ = "audit_events"

    # Chain order; timestamps alone can tie.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(64), unique=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    actor: Mapped[str] = mapped_column(String(128))
    actor_role: Mapped[str] = mapped_column(String(32))
    action: Mapped[str] = mapped_column(String(128))
    resource: Mapped[str] = mapped_column(Text)
    classification: Mapped[str] = mapped_column(String(32))
    details: Mapped[dict] = mapped_column(_jsonb(), default=dict)
    previous_hash: Mapped[str] = mapped_column(String(128), default="")
    entry_hash: Mapped[str] = mapped_column(String(128), default="")

    __table_args__ = (
        Index("ix_audit_events_resource", "resource"),
        Index("ix_audit_events_timestamp", "timestamp"),
    )
