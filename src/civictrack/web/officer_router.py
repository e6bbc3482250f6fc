"""FastAPI router for officer self-service endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Request
from pydantic import BaseModel, Field

from civictrack.auth.middleware import require_role
from civictrack.core.types import UserRole
from civictrack.directory.models import User
from civictrack.web.serializers import page_to_dict, transition_payload

router = APIRouter(prefix="/api/officer")

# Admins can act through these endpoints as an override.
_officer = require_role(UserRole.OFFICER, UserRole.ADMIN, UserRole.SUPERADMIN)


class AfterPhotosRequest(BaseModel):
    photos: list[Any] = Field(default_factory=list)


class MisrouteRequest(BaseModel):
    reason: str | None = None


@router.get("/reports")
async def list_assigned(
    request: Request,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
    user: User = _officer,
) -> dict[str, Any]:
    result = await request.app.state.report_service.list_assigned(
        user.id, status=status, search=search, page=page, limit=limit
    )
    return page_to_dict(result)


@router.get("/dashboard")
async def dashboard(request: Request, user: User = _officer) -> dict[str, Any]:
    return await request.app.state.report_service.officer_dashboard(user.id)


@router.post("/reports/{report_id}/start")
async def start_work(
    report_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = _officer,
) -> dict[str, Any]:
    result = await request.app.state.report_service.start_work(
        report_id, user.id, dispatch=False
    )
    return transition_payload(result, request, background_tasks)


@router.patch("/reports/{report_id}/after-photos")
async def add_after_photos(
    report_id: str,
    body: AfterPhotosRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = _officer,
) -> dict[str, Any]:
    result = await request.app.state.report_service.add_after_photos(
        report_id, user.id, body.photos, dispatch=False
    )
    payload = transition_payload(result, request, background_tasks)
    return {"count": len(payload["photos_after"]), "report": payload}


@router.post("/reports/{report_id}/submit-verification")
async def submit_verification(
    report_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = _officer,
) -> dict[str, Any]:
    result = await request.app.state.report_service.submit_for_verification(
        report_id, user.id, dispatch=False
    )
    return transition_payload(result, request, background_tasks)


@router.post("/reports/{report_id}/misroute")
async def misroute(
    report_id: str,
    body: MisrouteRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = _officer,
) -> dict[str, Any]:
    result = await request.app.state.report_service.misroute(
        report_id, user.id, body.reason, dispatch=False
    )
    return transition_payload(result, request, background_tasks)
