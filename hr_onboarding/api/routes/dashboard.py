from __future__ import annotations

import asyncio
from datetime import timedelta

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import StreamingResponse

from hr_onboarding.api import deps
from hr_onboarding.constants import (
    CANDIDATE_STATUS_OFFER_SENT,
    CANDIDATE_STATUS_OFFER_VIEWED,
    EMAIL_STATUS_FAILED,
    INACTIVE_CANDIDATE_STATUSES,
    OPEN_EVENT_STATUSES,
    PIPELINE_STATUS_VALUES,
    TASK_STATUS_PENDING,
)
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.core.roles import ALL_ROLES
from hr_onboarding.models.activity import ActivityLog
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.email import Email
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.models.task import Task
from hr_onboarding.schemas.dashboard import (
    ActivityOut,
    DashboardOverviewOut,
    DepartmentCount,
    StatusCount,
    UpcomingJoiningOut,
)
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity_feed import activity_feed

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def _count(session: AsyncSession, stmt) -> int:
    return int((await session.execute(stmt)).scalar() or 0)


@router.get("/overview", response_model=DashboardOverviewOut)
async def overview(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    now = now_local_naive()
    today = now.date()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    candidate_count = select(func.count(Candidate.candidate_id))
    task_count = select(func.count(Task.task_id)).where(Task.status == TASK_STATUS_PENDING)

    return DashboardOverviewOut(
        total_candidates=await _count(session, candidate_count),
        active_candidates=await _count(session, candidate_count.where(Candidate.status.not_in(INACTIVE_CANDIDATE_STATUSES))),
        joining_this_week=await _count(
            session,
            candidate_count.where(
                Candidate.expected_joining_date >= today,
                Candidate.expected_joining_date < today + timedelta(days=7),
                Candidate.status.not_in(INACTIVE_CANDIDATE_STATUSES),
            ),
        ),
        offers_pending_signature=await _count(
            session,
            candidate_count.where(Candidate.status.in_((CANDIDATE_STATUS_OFFER_SENT, CANDIDATE_STATUS_OFFER_VIEWED))),
        ),
        events_today=await _count(
            session,
            select(func.count(ScheduledEvent.event_id)).where(
                ScheduledEvent.start_time >= day_start,
                ScheduledEvent.start_time < day_start + timedelta(days=1),
                ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
            ),
        ),
        tasks_pending=await _count(session, task_count),
        tasks_overdue=await _count(session, task_count.where(Task.due_date < now)),
        emails_failed_last_7_days=await _count(
            session,
            select(func.count(Email.email_id)).where(
                Email.status == EMAIL_STATUS_FAILED,
                Email.created_at >= now - timedelta(days=7),
            ),
        ),
    )


@router.get("/pipeline", response_model=list[StatusCount])
async def pipeline(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    rows = (
        await session.execute(select(Candidate.status, func.count(Candidate.candidate_id)).group_by(Candidate.status))
    ).all()
    counts = {status: int(count) for status, count in rows}
    return [StatusCount(status=status, count=counts.get(status, 0)) for status in PIPELINE_STATUS_VALUES]


@router.get("/departments", response_model=list[DepartmentCount])
async def department_breakdown(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    rows = (
        await session.execute(
            select(Candidate.department, func.count(Candidate.candidate_id))
            .where(Candidate.status.not_in(INACTIVE_CANDIDATE_STATUSES))
            .group_by(Candidate.department)
            .order_by(func.count(Candidate.candidate_id).desc(), Candidate.department.asc())
        )
    ).all()
    return [DepartmentCount(department=department, count=int(count)) for department, count in rows]


@router.get("/activity", response_model=list[ActivityOut])
async def recent_activity(
    limit: int = Query(default=20, ge=1, le=200),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    rows = await session.execute(
        select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.activity_id.desc()).limit(limit)
    )
    return rows.scalars().all()


@router.get("/upcoming-joinings", response_model=list[UpcomingJoiningOut])
async def upcoming_joinings(
    days: int = Query(default=30, ge=1, le=365),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    today = now_local_naive().date()
    rows = await session.execute(
        select(Candidate)
        .where(
            Candidate.expected_joining_date.is_not(None),
            Candidate.expected_joining_date >= today,
            Candidate.expected_joining_date <= today + timedelta(days=days),
            Candidate.status.not_in(INACTIVE_CANDIDATE_STATUSES),
        )
        .order_by(Candidate.expected_joining_date.asc(), Candidate.candidate_id.asc())
    )
    return [
        UpcomingJoiningOut(
            candidate_id=c.candidate_id,
            full_name=c.full_name,
            department=c.department,
            position=c.position,
            expected_joining_date=c.expected_joining_date,
        )
        for c in rows.scalars().all()
    ]


@router.get("/stream")
async def stream_activity(
    request: Request,
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    async def activity_events():
        async with activity_feed.subscription() as queue:
            while not await request.is_disconnected():
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=15)
                except asyncio.TimeoutError:
                    yield "event: ping\ndata: {}\n\n"
                    continue
                yield f"event: activity\ndata: {data}\n\n"

    return StreamingResponse(
        activity_events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
