from __future__ import annotations

from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.api import deps
from hr_onboarding.constants import EVENT_STATUS_COMPLETED, OPEN_EVENT_STATUSES
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.core.roles import ALL_ROLES, EDITOR_ROLES
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.request_context import get_request_context
from hr_onboarding.schemas.scheduled_event import (
    CancelEventIn,
    EventStatsOut,
    RescheduleIn,
    ScheduledEventCreateIn,
    ScheduledEventOut,
    ScheduledEventUpdateIn,
)
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.scheduled_events import (
    EventError,
    cancel_event,
    create_event,
    event_stats,
    reschedule_event,
    update_event,
)
from hr_onboarding.services.step_completion import StepCompletionError, complete_step

router = APIRouter(prefix="/events", tags=["events"])


def _event_error(exc: ValueError) -> HTTPException:
    code = str(exc)
    if code.endswith("_not_found"):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=code)
    if code in {"event_not_open", "event_already_completed"}:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=code)
    if code == "email_send_failed":
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=code)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=code)


async def _get_event(session: AsyncSession, event_id: int) -> ScheduledEvent:
    event = await session.get(ScheduledEvent, event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="event_not_found")
    return event


async def _events_between(session: AsyncSession, start: datetime, end: datetime) -> list[ScheduledEvent]:
    rows = await session.execute(
        select(ScheduledEvent)
        .where(
            ScheduledEvent.start_time >= start,
            ScheduledEvent.start_time < end,
            ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
        )
        .order_by(ScheduledEvent.start_time.asc(), ScheduledEvent.event_id.asc())
    )
    return list(rows.scalars().all())


@router.get("", response_model=list[ScheduledEventOut])
async def list_events(
    candidate_id: int | None = None,
    event_type: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    stmt = select(ScheduledEvent)
    if candidate_id is not None:
        stmt = stmt.where(ScheduledEvent.candidate_id == candidate_id)
    if event_type:
        stmt = stmt.where(ScheduledEvent.event_type == event_type)
    if status_filter:
        stmt = stmt.where(ScheduledEvent.status == status_filter)
    if start_date:
        stmt = stmt.where(ScheduledEvent.start_time >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        stmt = stmt.where(ScheduledEvent.start_time < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))
    rows = await session.execute(stmt.order_by(ScheduledEvent.start_time.asc(), ScheduledEvent.event_id.asc()).limit(limit))
    return rows.scalars().all()


@router.get("/today", response_model=list[ScheduledEventOut])
async def list_today_events(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    day_start = now_local_naive().replace(hour=0, minute=0, second=0, microsecond=0)
    return await _events_between(session, day_start, day_start + timedelta(days=1))


@router.get("/upcoming", response_model=list[ScheduledEventOut])
async def list_upcoming_events(
    days: int = Query(default=7, ge=1, le=90),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    now = now_local_naive()
    return await _events_between(session, now, now + timedelta(days=days))


@router.get("/stats", response_model=EventStatsOut)
async def get_event_stats(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    return EventStatsOut(**await event_stats(session))


@router.get("/{event_id}", response_model=ScheduledEventOut)
async def get_event(
    event_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    return await _get_event(session, event_id)


@router.post("", response_model=ScheduledEventOut, status_code=status.HTTP_201_CREATED)
async def create_event_route(
    payload: ScheduledEventCreateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    candidate = await session.get(Candidate, payload.candidate_id)
    if not candidate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="candidate_not_found")
    try:
        event = await create_event(session, candidate, payload)
    except EventError as exc:
        raise _event_error(exc) from exc
    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action=f"{event.event_type}_SCHEDULED",
        description=f"{event.title} scheduled for {event.start_time:%d %b %Y %H:%M}",
        actor_email=user.email,
        meta_json={"event_id": event.event_id, "step_number": event.step_number},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(event)
    return event


@router.put("/{event_id}", response_model=ScheduledEventOut)
async def update_event_route(
    event_id: int,
    payload: ScheduledEventUpdateIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    event = await _get_event(session, event_id)
    await update_event(session, event, payload)
    await session.commit()
    await session.refresh(event)
    return event


@router.post("/{event_id}/reschedule", response_model=ScheduledEventOut)
async def reschedule_event_route(
    event_id: int,
    payload: RescheduleIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    event = await _get_event(session, event_id)
    try:
        await reschedule_event(session, event, start_time=payload.start_time, end_time=payload.end_time, reason=payload.reason)
    except EventError as exc:
        raise _event_error(exc) from exc
    await log_activity(
        session,
        candidate_id=event.candidate_id,
        action="EVENT_RESCHEDULED",
        description=f"{event.title} moved to {event.start_time:%d %b %Y %H:%M}",
        actor_email=user.email,
        meta_json={"event_id": event.event_id, "reason": payload.reason},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(event)
    return event


@router.post("/{event_id}/cancel", response_model=ScheduledEventOut)
async def cancel_event_route(
    event_id: int,
    payload: CancelEventIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    event = await _get_event(session, event_id)
    try:
        await cancel_event(session, event, reason=payload.reason)
    except EventError as exc:
        raise _event_error(exc) from exc
    await log_activity(
        session,
        candidate_id=event.candidate_id,
        action="EVENT_CANCELLED",
        description=f"{event.title} cancelled",
        actor_email=user.email,
        meta_json={"event_id": event.event_id, "reason": payload.reason},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(event)
    return event


@router.post("/{event_id}/complete", response_model=ScheduledEventOut)
async def complete_event_route(
    event_id: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    company: CompanySettings = Depends(deps.get_company),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    event = await _get_event(session, event_id)
    if event.status == EVENT_STATUS_COMPLETED:
        return event
    if event.status not in OPEN_EVENT_STATUSES:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="event_not_open")

    request_id = get_request_context(request).request_id
    if event.step_number is not None:
        candidate = await session.get(Candidate, event.candidate_id)
        try:
            await complete_step(
                session,
                candidate,
                event.step_number,
                company=company,
                actor_email=user.email,
                request_id=request_id,
            )
        except StepCompletionError as exc:
            raise _event_error(exc) from exc
    else:
        event.status = EVENT_STATUS_COMPLETED
        await log_activity(
            session,
            candidate_id=event.candidate_id,
            action="EVENT_COMPLETED",
            description=f"{event.title} completed",
            actor_email=user.email,
            meta_json={"event_id": event.event_id},
            request_id=request_id,
        )
    await session.commit()
    await session.refresh(event)
    return event
