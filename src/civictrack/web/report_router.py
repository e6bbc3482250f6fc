"""FastAPI router for report filing, viewing, reporter confirmation and deletion."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel, Field

from civictrack.auth.middleware import current_user
from civictrack.core.types import ADMIN_ROLES
from civictrack.directory.models import User
from civictrack.web.serializers import (
    page_to_dict,
    report_to_dict,
    schedule_notifications,
    transition_payload,
)

router = APIRouter()


# --- Request models ---


class CreateReportRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category_id: str | None = None
    department: str | None = None
    photos_before: list[Any] = Field(default_factory=list)


class StatusChangeRequest(BaseModel):
    status: str
    reason: str | None = None


class CategorizeRequest(BaseModel):
    description: str = Field(min_length=1)


# --- Endpoints ---


@router.post("/api/reports", status_code=201)
async def create_report(
    body: CreateReportRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    service = request.app.state.report_service
    result = await service.create_report(
        user.id,
        title=body.title,
        description=body.description,
        category_id=body.category_id,
        department=body.department,
        photos_before=body.photos_before,
        dispatch=False,
    )
    schedule_notifications(request, background_tasks, result.events)
    return report_to_dict(result.report)


@router.get("/api/reports")
async def list_reports(
    request: Request,
    reporter_id: str | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    """Admins may list anyone's reports; everyone else sees only their own."""
    if user.role not in ADMIN_ROLES:
        reporter_id = user.id
    service = request.app.state.report_service
    result = await service.list_reports(
        reporter_id=reporter_id, status=status, search=search, page=page, limit=limit
    )
    return page_to_dict(result)


@router.post("/api/reports/categorize")
async def categorize(
    body: CategorizeRequest,
    request: Request,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    suggestion = await request.app.state.report_service.suggest_category(body.description)
    return {
        "category": (
            {"id": suggestion.category.id, "name": suggestion.category.name}
            if suggestion.category
            else None
        ),
        "department": (
            {"id": suggestion.department.id, "name": suggestion.department.name}
            if suggestion.department
            else None
        ),
        "officers": [
            {"id": o.id, "name": o.name, "email": o.email, "phone": o.phone}
            for o in suggestion.officers
        ],
    }


@router.get("/api/reports/{report_id}")
async def get_report(
    report_id: str,
    request: Request,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    report = await request.app.state.report_service.get_report(report_id, viewer_id=user.id)
    return report_to_dict(report)


@router.patch("/api/reports/{report_id}/status")
async def change_status(
    report_id: str,
    body: StatusChangeRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    """Generic transition endpoint; the actor's role decides what is allowed."""
    result = await request.app.state.report_service.set_status(
        report_id, body.status, user.id, reason=body.reason, dispatch=False
    )
    return transition_payload(result, request, background_tasks)


@router.post("/api/reports/{report_id}/verify")
async def verify_report(
    report_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    result = await request.app.state.report_service.verify(report_id, user.id, dispatch=False)
    return transition_payload(result, request, background_tasks)


@router.post("/api/reports/{report_id}/close")
async def close_report(
    report_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    result = await request.app.state.report_service.close(report_id, user.id, dispatch=False)
    return transition_payload(result, request, background_tasks)


@router.delete("/api/reports/{report_id}")
async def delete_report(
    report_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(current_user),
) -> dict[str, Any]:
    result = await request.app.state.report_service.soft_delete(
        report_id, user.id, dispatch=False
    )
    return transition_payload(result, request, background_tasks)
