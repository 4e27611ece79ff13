"""Google Calendar copy of onboarding events.

The ``onb_scheduled_event`` row is the source of truth. The calendar copy is
best effort: provider failures are logged and the local row is kept, without a
``google_event_id`` when the insert failed. With ``ONB_ENABLE_CALENDAR`` off
nothing is sent at all.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

import google.auth
from fastapi.concurrency import run_in_threadpool
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from hr_onboarding.core.config import settings
from hr_onboarding.core.paths import resolve_repo_path
from hr_onboarding.models.scheduled_event import ScheduledEvent

logger = logging.getLogger("onb.calendar")

CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]


def _events_api():
    if settings.google_application_credentials:
        credentials = Credentials.from_service_account_file(
            str(resolve_repo_path(settings.google_application_credentials)),
            scopes=CALENDAR_SCOPES,
        )
        # Invites go out as the HR mailbox, same identity as Gmail.
        if settings.gmail_sender_email:
            credentials = credentials.with_subject(settings.gmail_sender_email)
    else:
        credentials, _ = google.auth.default(scopes=CALENDAR_SCOPES)
    return build("calendar", "v3", credentials=credentials, cache_discovery=False).events()


def _calendar_id() -> str:
    return settings.calendar_id or "primary"


def meeting_link_of(resource: dict[str, Any]) -> str | None:
    if resource.get("hangoutLink"):
        return resource["hangoutLink"]
    entry_points = (resource.get("conferenceData") or {}).get("entryPoints") or []
    return next((e.get("uri") for e in entry_points if e.get("entryPointType") == "video"), None)


def event_resource(event: ScheduledEvent) -> dict[str, Any]:
    # Stored times are naive local times, so the zone travels alongside them.
    zone = settings.calendar_timezone or "UTC"
    return {
        "summary": event.title,
        "description": event.description or "",
        "start": {"dateTime": event.start_time.isoformat(), "timeZone": zone},
        "end": {"dateTime": event.end_time.isoformat(), "timeZone": zone},
        "attendees": [{"email": address} for address in (event.attendees or []) if address],
    }


def _insert(resource: dict[str, Any], with_meet: bool) -> dict[str, Any]:
    if with_meet:
        resource = {
            **resource,
            "conferenceData": {
                "createRequest": {"requestId": uuid4().hex, "conferenceSolutionKey": {"type": "hangoutsMeet"}}
            },
        }
    return (
        _events_api()
        .insert(calendarId=_calendar_id(), body=resource, conferenceDataVersion=int(with_meet), sendUpdates="all")
        .execute()
    )


def _patch(google_event_id: str, resource: dict[str, Any]) -> dict[str, Any]:
    return (
        _events_api()
        .patch(calendarId=_calendar_id(), eventId=google_event_id, body=resource, sendUpdates="all")
        .execute()
    )


def _delete(google_event_id: str) -> None:
    _events_api().delete(calendarId=_calendar_id(), eventId=google_event_id, sendUpdates="all").execute()


async def publish_event(event: ScheduledEvent, *, with_meet: bool = True) -> None:
    """Create the calendar copy and store its id and Meet link on ``event``."""
    if not settings.enable_calendar:
        return
    try:
        created = await run_in_threadpool(_insert, event_resource(event), with_meet)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "calendar_create_failed",
            extra={"candidate_id": event.candidate_id, "event_id": event.event_id, "error": str(exc)},
        )
        return
    event.google_event_id = created.get("id")
    event.meeting_link = meeting_link_of(created) or event.meeting_link


async def sync_event(event: ScheduledEvent) -> None:
    """Push changed time, title or attendees to an existing calendar copy."""
    if not settings.enable_calendar or not event.google_event_id:
        return
    try:
        updated = await run_in_threadpool(_patch, event.google_event_id, event_resource(event))
    except Exception as exc:  # noqa: BLE001
        logger.warning("calendar_update_failed", extra={"event_id": event.event_id, "error": str(exc)})
        return
    event.meeting_link = meeting_link_of(updated) or event.meeting_link


async def withdraw_event(event: ScheduledEvent) -> None:
    if not settings.enable_calendar or not event.google_event_id:
        return
    try:
        await run_in_threadpool(_delete, event.google_event_id)
    except Exception as exc:  # noqa: BLE001
        logger.warning("calendar_delete_failed", extra={"event_id": event.event_id, "error": str(exc)})
