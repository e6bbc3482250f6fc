"""FastAPI router for admin overrides, the audit trail and lifecycle metrics."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Request
from pydantic import BaseModel, Field

from civictrack.auth.middleware import require_role
from civictrack.core.types import UserRole
from civictrack.directory.models import User
from civictrack.repositories import resolve
from civictrack.web.serializers import schedule_notifications, transition_payload

router = APIRouter()

_admin = require_role(UserRole.ADMIN, UserRole.SUPERADMIN)


class OverrideRequest(BaseModel):
    status: str


class BulkStatusRequest(BaseModel):
    report_ids: list[str] = Field(min_length=1)
    status: str


@router.patch("/api/admin/reports/{report_id}/status")
async def override_status(
    report_id: str,
    body: OverrideRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = _admin,
) -> dict[str, Any]:
    result = await request.app.state.report_service.set_status(
        report_id, body.status, user.id, dispatch=False
    )
    return transition_payload(result, request, background_tasks)


@router.post("/api/admin/reports/bulk-status")
async def bulk_status(
    body: BulkStatusRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = _admin,
) -> dict[str, Any]:
    """Apply one override to many reports; each id gets its own outcome."""
    outcomes, events = await request.app.state.report_service.bulk_set_status(
        body.report_ids, body.status, user.id, dispatch=False
    )
    schedule_notifications(request, background_tasks, events)
    return {
        "updated": sum(1 for o in outcomes if o.ok),
        "results": [o.model_dump() for o in outcomes],
    }


@router.get("/api/admin/audit")
async def audit_trail(
    request: Request,
    report_id: str | None = None,
    actor: str | None = None,
    action: str | None = None,
    user: User = _admin,
) -> dict[str, Any]:
    audit_logger = request.app.state.audit_logger
    events = await resolve(
        audit_logger.query(
            actor=actor,
            action=action,
            resource=f"report:{report_id}" if report_id else None,
        )
    )
    return {
        "chain_valid": await resolve(audit_logger.verify_chain()),
        "events": [e.model_dump(mode="json") for e in events],
    }


@router.get("/api/metrics")
async def metrics(request: Request) -> dict[str, Any]:
    return {"counters": request.app.state.report_service.metrics.snapshot()}
