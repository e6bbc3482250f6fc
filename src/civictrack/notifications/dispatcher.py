"""Fire-and-forget fan-out of report lifecycle notifications.

The dispatcher decides who hears about a status change and hands the event
to a :class:`NotificationSink`. Delivery runs in the background and every
failure is logged and swallowed, so a broken sink never affects a report.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from civictrack.core.types import NotificationType, ReportStatus
from civictrack.lifecycle.guard import Actor
from civictrack.notifications.models import NotificationEvent
from civictrack.notifications.service import NotificationSink
from civictrack.repositories import resolve
from civictrack.repositories.protocols import DirectoryRepository
from civictrack.reports.models import Report

logger = logging.getLogger(__name__)

_STATUS_EVENTS: dict[ReportStatus, NotificationType] = {
    ReportStatus.ASSIGNED: NotificationType.ASSIGNED,
    ReportStatus.AWAITING_VERIFICATION: NotificationType.AWAITING_VERIFICATION,
    ReportStatus.MISROUTED: NotificationType.MISROUTED,
    ReportStatus.VERIFIED: NotificationType.VERIFIED,
    ReportStatus.CLOSED: NotificationType.CLOSED,
}


class NotificationDispatcher:
    """Plans and delivers notifications for report status changes.

    Recipients per new status:
        assigned: the reporter and every assignee
        awaiting_verification, verified, closed: the reporter
        misrouted: the reporter and every admin/superadmin

    Args:
        sink: Where notifications go.
        directory: Used to look up admins and officer names.
    """

    def __init__(self, sink: NotificationSink, directory: DirectoryRepository) -> None:
        self._sink = sink
        self._directory = directory
        self._background_tasks: set[asyncio.Task] = set()

    async def plan(
        self,
        report: Report,
        status: ReportStatus,
        actor: Actor | None = None,
    ) -> NotificationEvent | None:
        """Build the event for ``report`` entering ``status``, if any."""
        event_type = _STATUS_EVENTS.get(status)
        if event_type is None:
            return None

        payload: dict[str, Any] = {"status": str(status)}
        if actor is not None:
            payload["actor"] = actor.id
        recipients = [report.reporter_id]

        if status == ReportStatus.ASSIGNED:
            if not report.assigned_to:
                return None
            recipients.extend(report.assigned_to)
            officer = await resolve(self._directory.get_user(report.assigned_to[0]))
            if officer is not None:
                payload["officer_name"] = officer.name
        elif status == ReportStatus.MISROUTED:
            admins = await resolve(self._directory.list_admins())
            recipients.extend(a.id for a in admins)
            payload["reason"] = report.misroute_reason

        return NotificationEvent(
            type=event_type,
            user_ids=list(dict.fromkeys(recipients)),
            report_id=report.id,
            payload=payload,
        )

    async def deliver(self, event: NotificationEvent) -> int:
        """Send one event to the sink. Never raises."""
        try:
            return await resolve(
                self._sink.notify(event.user_ids, event.type, event.payload, event.report_id)
            )
        except Exception:
            logger.exception(
                "Notification %s for report %s failed", event.type, event.report_id
            )
            return 0

    async def deliver_all(self, events: list[NotificationEvent]) -> int:
        delivered = 0
        for event in events:
            delivered += await self.deliver(event)
        return delivered

    def post(self, event: NotificationEvent) -> None:
        """Schedule background delivery and return immediately."""
        task = asyncio.get_running_loop().create_task(self.deliver(event))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def flush(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))

    @property
    def pending(self) -> int:
        return len(self._background_tasks)
