"""Response shaping shared by the report routers."""

from __future__ import annotations

from typing import Any

from fastapi import BackgroundTasks, Request

from civictrack.notifications.models import NotificationEvent
from civictrack.reports.models import Report
from civictrack.reports.service import Page, TransitionResult
from civictrack.web.errors import TransitionRejected


def report_to_dict(report: Report) -> dict[str, Any]:
    return report.model_dump(mode="json")


def page_to_dict(page: Page) -> dict[str, Any]:
    return {
        "items": [report_to_dict(r) for r in page.items],
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "total_pages": page.total_pages,
        },
    }


def schedule_notifications(
    request: Request,
    background_tasks: BackgroundTasks,
    events: list[NotificationEvent],
) -> None:
    """Deliver after the response has been sent."""
    dispatcher = request.app.state.report_service.dispatcher
    if dispatcher is not None and events:
        background_tasks.add_task(dispatcher.deliver_all, events)


def transition_payload(
    result: TransitionResult,
    request: Request,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    """Serialize a successful mutation or raise its rejection."""
    if not result.ok:
        raise TransitionRejected(result.reason or "rejected")
    schedule_notifications(request, background_tasks, result.events)
    return report_to_dict(result.report)
