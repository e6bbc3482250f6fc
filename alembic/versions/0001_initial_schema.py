"""Initial schema: reports, directory, notifications and audit.

Revision ID: 0001
Revises:
Create Date: 2026-10-17

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Reports --
    op.create_table(
        "reports",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("reporter_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("category_id", sa.String(64), nullable=True),
        sa.Column("department", sa.String(256), nullable=True),
        sa.Column("misroute_reason", sa.Text, nullable=True),
        sa.Column("photos_before", sa.JSON, nullable=False),
        sa.Column("photos_after", sa.JSON, nullable=False),
        sa.Column("history", sa.JSON, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_reports_status", "reports", ["status"])
    op.create_index("ix_reports_reporter_id", "reports", ["reporter_id"])
    op.create_index("ix_reports_created_at", "reports", ["created_at"])

    # -- Report assignees --
    op.create_table(
        "report_assignees",
        sa.Column(
            "report_id",
            sa.String(64),
            sa.ForeignKey("reports.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("position", sa.Integer, server_default="0"),
    )
    op.create_index("ix_report_assignees_user_id", "report_assignees", ["user_id"])

    # -- Users --
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("email", sa.String(256), server_default=""),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("role", sa.String(32), server_default="reporter"),
        sa.Column("status", sa.String(16), server_default="active"),
        sa.Column("department", sa.String(256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_department", "users", ["department"])

    # -- Departments --
    op.create_table(
        "departments",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("is_deleted", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_departments_name", "departments", ["name"])

    op.create_table(
        "department_officers",
        sa.Column(
            "department_id",
            sa.String(64),
            sa.ForeignKey("departments.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("position", sa.Integer, server_default="0"),
    )

    op.create_table(
        "department_categories",
        sa.Column(
            "department_id",
            sa.String(64),
            sa.ForeignKey("departments.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("category_id", sa.String(64), primary_key=True),
        sa.Column("position", sa.Integer, server_default="0"),
    )
    op.create_index(
        "ix_department_categories_category_id", "department_categories", ["category_id"]
    )

    # -- Categories --
    op.create_table(
        "categories",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("slug", sa.String(256), server_default=""),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("keywords", sa.JSON, nullable=False),
        sa.Column("is_deleted", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Notifications --
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("report_id", sa.String(64), nullable=True),
        sa.Column("title", sa.String(512), server_default=""),
        sa.Column("message", sa.Text, server_default=""),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    # -- Audit Events --
    op.create_table(
        "audit_events",
        sa.Column("seq", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(64), nullable=False, unique=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor", sa.String(128), nullable=False),
        sa.Column("actor_role", sa.String(32), nullable=False),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("resource", sa.Text, nullable=False),
        sa.Column("classification", sa.String(32), nullable=False),
        sa.Column("details", sa.JSON, nullable=False),
        sa.Column("previous_hash", sa.String(128), server_default=""),
        sa.Column("entry_hash", sa.String(128), server_default=""),
    )
    op.create_index("ix_audit_events_resource", "audit_events", ["resource"])
    op.create_index("ix_audit_events_timestamp", "audit_events", ["timestamp"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("notifications")
    op.drop_table("categories")
    op.drop_table("department_categories")
    op.drop_table("department_officers")
    op.drop_table("departments")
    op.drop_table("users")
    op.drop_table("report_assignees")
    op.drop_table("reports")
