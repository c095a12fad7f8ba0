"""
Outbound notifications. Callers fire these and move on; delivery failures
never affect the command that triggered them.
"""

import logging
from typing import Any

import httpx

from app.config import Settings
from app.models import EmergencyMeetingRequest, Meeting, Volunteer

logger = logging.getLogger(__name__)


async def _deliver(settings: Settings, event: str, payload: dict[str, Any]) -> None:
    if not settings.notification_webhook_url:
        logger.info("notification %s (no webhook configured): %s", event, payload)
        return

    async with httpx.AsyncClient(timeout=settings.notification_timeout) as client:
        response = await client.post(
            settings.notification_webhook_url, json={"type": event, **payload}
        )
        response.raise_for_status()
    logger.info("notification %s delivered", event)


async def meeting_scheduled(meeting: Meeting, *, settings: Settings) -> None:
    await _deliver(
        settings,
        "meeting_scheduled",
        {
            "meeting_id": meeting.id,
            "title": meeting.title,
            "organization": settings.organization_name,
            "date": meeting.date.isoformat(),
            "time": meeting.time,
            "meeting_type": meeting.type.value,
        },
    )


async def emergency_meeting_requested(
    request: EmergencyMeetingRequest, *, settings: Settings
) -> None:
    await _deliver(
        settings,
        "emergency_meeting_requested",
        {
            "request_id": request.id,
            "reason": request.reason,
            "requested_by": request.requested_by_name or request.requested_by,
        },
    )


async def application_reviewed(volunteer: Volunteer, *, settings: Settings) -> None:
    await _deliver(
        settings,
        "application_reviewed",
        {
            "volunteer_id": volunteer.id,
            "email": volunteer.email,
            "name": volunteer.name,
            "decision": volunteer.application_status.value,
            "role": volunteer.role.value if volunteer.role else None,
            "notes": volunteer.review_notes,
        },
    )


async def volunteer_added(volunteer: Volunteer, *, settings: Settings) -> None:
    await _deliver(
        settings,
        "volunteer_added",
        {
            "volunteer_id": volunteer.id,
            "email": volunteer.email,
            "name": volunteer.name,
            "role": volunteer.role.value if volunteer.role else None,
        },
    )
