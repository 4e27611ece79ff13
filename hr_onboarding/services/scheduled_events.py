from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import (
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_RESCHEDULED,
    EVENT_STATUS_SCHEDULED,
    OPEN_EVENT_STATUSES,
)
from hr_onboarding.core.datetime_utils import now_local_naive, to_local_naive
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.schemas.scheduled_event import ScheduledEventCreateIn, ScheduledEventUpdateIn
from hr_onboarding.services.calendar import publish_event, sync_event, withdraw_event
from hr_onboarding.services.step_schedule import default_duration_for, resolve_step_schedule
from hr_onboarding.services.workflow import find_department_step, load_candidate_anchors, step_rule


class EventError(ValueError):
    pass


def merge_paths(existing: Iterable[str] | None, incoming: Iterable[str] | None) -> list[str]:
    """Union of two attachment lists, keeping first-seen order."""
    merged: list[str] = []
    for path in list(existing or []) + list(incoming or []):
        if path and path not in merged:
            merged.append(path)
    return merged


async def create_event(session: AsyncSession, candidate: Candidate, payload: ScheduledEventCreateIn) -> ScheduledEvent:
    start_at = to_local_naive(payload.start_time) if payload.start_time else None
    duration = payload.duration_minutes
    if start_at is None:
        step = await find_department_step(session, candidate.department, step_number=payload.step_number)
        if step is None:
            raise EventError("step_not_found")
        resolved = resolve_step_schedule(step_rule(step), await load_candidate_anchors(session, candidate))
        if not resolved.is_scheduled:
            raise EventError(f"anchor_unknown:{resolved.reason or resolved.status}")
        start_at = resolved.at
        duration = duration or step.duration_minutes

    if payload.end_time:
        end_at = to_local_naive(payload.end_time)
    else:
        end_at = start_at + timedelta(minutes=duration or default_duration_for(payload.event_type))

    attendees = merge_paths([candidate.email] if candidate.email else [], payload.attendees)
    event = ScheduledEvent(
        candidate_id=candidate.candidate_id,
        step_number=payload.step_number,
        event_type=payload.event_type,
        title=payload.title or f"{payload.event_type.replace('_', ' ').title()} - {candidate.full_name}",
        description=payload.description,
        start_time=start_at,
        end_time=end_at,
        status=EVENT_STATUS_SCHEDULED,
        attendees=attendees or None,
        attachment_paths=merge_paths([], payload.attachment_paths) or None,
        meta_json={"source": "manual"},
    )
    session.add(event)
    await session.flush()
    await publish_event(event, with_meet=payload.create_meet_link)
    return event


async def update_event(session: AsyncSession, event: ScheduledEvent, payload: ScheduledEventUpdateIn) -> ScheduledEvent:
    data = payload.model_dump(exclude_unset=True)
    if "attachment_paths" in data:
        event.attachment_paths = merge_paths(event.attachment_paths, data.pop("attachment_paths")) or None
    if "attendees" in data:
        event.attendees = merge_paths(event.attendees, data.pop("attendees")) or None
    for key, value in data.items():
        setattr(event, key, value)
    await sync_event(event)
    await session.flush()
    return event


async def reschedule_event(
    session: AsyncSession,
    event: ScheduledEvent,
    *,
    start_time: datetime,
    end_time: datetime | None = None,
    reason: str | None = None,
) -> ScheduledEvent:
    if event.status not in OPEN_EVENT_STATUSES:
        raise EventError("event_not_open")
    duration = event.end_time - event.start_time
    event.start_time = to_local_naive(start_time)
    event.end_time = to_local_naive(end_time) if end_time else event.start_time + duration
    if event.end_time <= event.start_time:
        raise EventError("end_time_before_start_time")
    event.status = EVENT_STATUS_RESCHEDULED
    if reason:
        event.meta_json = {**(event.meta_json or {}), "reschedule_reason": reason}
    await sync_event(event)
    await session.flush()
    return event


async def cancel_event(session: AsyncSession, event: ScheduledEvent, *, reason: str | None = None) -> ScheduledEvent:
    if event.status == EVENT_STATUS_CANCELLED:
        return event
    if event.status == EVENT_STATUS_COMPLETED:
        raise EventError("event_already_completed")
    await withdraw_event(event)
    event.status = EVENT_STATUS_CANCELLED
    event.meta_json = {**(event.meta_json or {}), "cancel_reason": reason or "cancelled"}
    await session.flush()
    return event


async def event_stats(session: AsyncSession) -> dict[str, int]:
    rows = (
        await session.execute(select(ScheduledEvent.status, func.count(ScheduledEvent.event_id)).group_by(ScheduledEvent.status))
    ).all()
    by_status = {status: int(count) for status, count in rows}

    now = now_local_naive()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1)
    today = (
        await session.execute(
            select(func.count(ScheduledEvent.event_id)).where(
                ScheduledEvent.start_time >= day_start,
                ScheduledEvent.start_time < day_end,
                ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
            )
        )
    ).scalar() or 0
    upcoming = (
        await session.execute(
            select(func.count(ScheduledEvent.event_id)).where(
                ScheduledEvent.start_time >= now,
                ScheduledEvent.start_time < now + timedelta(days=7),
                ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
            )
        )
    ).scalar() or 0
    return {
        "total": sum(by_status.values()),
        "scheduled": by_status.get(EVENT_STATUS_SCHEDULED, 0),
        "completed": by_status.get(EVENT_STATUS_COMPLETED, 0),
        "cancelled": by_status.get(EVENT_STATUS_CANCELLED, 0),
        "rescheduled": by_status.get(EVENT_STATUS_RESCHEDULED, 0),
        "today": int(today),
        "upcoming_week": int(upcoming),
    }
