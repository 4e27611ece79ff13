from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.api import deps
from hr_onboarding.constants import (
    TASK_STATUS_COMPLETED,
    TASK_STATUS_PENDING,
    TASK_STATUS_SKIPPED,
    TASK_STATUS_SNOOZED,
)
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.datetime_utils import now_local_naive, to_local_naive
from hr_onboarding.core.roles import ALL_ROLES, EDITOR_ROLES
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.task import Task
from hr_onboarding.request_context import get_request_context
from hr_onboarding.schemas.task import TaskCreateIn, TaskOut, TaskSnoozeIn, TaskUpdateIn
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity import log_activity

router = APIRouter(prefix="/tasks", tags=["tasks"])


async def _get_task(session: AsyncSession, task_id: int) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="task_not_found")
    return task


async def _set_status(
    session: AsyncSession,
    task: Task,
    new_status: str,
    *,
    user: UserContext,
    request: Request,
) -> Task:
    if task.status in (TASK_STATUS_COMPLETED, TASK_STATUS_SKIPPED):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="task_already_closed")
    task.status = new_status
    task.snoozed_until = None
    if new_status == TASK_STATUS_COMPLETED:
        task.completed_at = now_local_naive()
    await log_activity(
        session,
        candidate_id=task.candidate_id,
        action=f"TASK_{new_status}",
        description=task.title,
        actor_email=user.email,
        meta_json={"task_id": task.task_id},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(task)
    return task


@router.get("", response_model=list[TaskOut])
async def list_tasks(
    candidate_id: int | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    assigned_to: str | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    stmt = select(Task)
    if candidate_id is not None:
        stmt = stmt.where(Task.candidate_id == candidate_id)
    if status_filter:
        stmt = stmt.where(Task.status == status_filter)
    if assigned_to:
        stmt = stmt.where(Task.assigned_to_email == assigned_to.lower())
    rows = await session.execute(stmt.order_by(Task.due_date.asc(), Task.task_id.asc()).limit(limit))
    return rows.scalars().all()


@router.get("/overdue", response_model=list[TaskOut])
async def list_overdue_tasks(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    rows = await session.execute(
        select(Task)
        .where(Task.status == TASK_STATUS_PENDING, Task.due_date < now_local_naive())
        .order_by(Task.due_date.asc())
    )
    return rows.scalars().all()


@router.get("/today", response_model=list[TaskOut])
async def list_today_tasks(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    day_start = now_local_naive().replace(hour=0, minute=0, second=0, microsecond=0)
    rows = await session.execute(
        select(Task)
        .where(
            Task.status == TASK_STATUS_PENDING,
            Task.due_date >= day_start,
            Task.due_date < day_start + timedelta(days=1),
        )
        .order_by(Task.due_date.asc())
    )
    return rows.scalars().all()


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    if not await session.get(Candidate, payload.candidate_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="candidate_not_found")
    data = payload.model_dump()
    data["due_date"] = to_local_naive(payload.due_date)
    if data.get("assigned_to_email"):
        data["assigned_to_email"] = data["assigned_to_email"].strip().lower()
    task = Task(**data)
    session.add(task)
    await session.flush()
    await log_activity(
        session,
        candidate_id=task.candidate_id,
        action="TASK_CREATED",
        description=task.title,
        actor_email=user.email,
        meta_json={"task_id": task.task_id},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(task)
    return task


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    payload: TaskUpdateIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    task = await _get_task(session, task_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("due_date"):
        data["due_date"] = to_local_naive(data["due_date"])
    for key, value in data.items():
        setattr(task, key, value)
    if data.get("status") == TASK_STATUS_COMPLETED and task.completed_at is None:
        task.completed_at = now_local_naive()
    await session.commit()
    await session.refresh(task)
    return task


@router.post("/{task_id}/complete", response_model=TaskOut)
async def complete_task(
    task_id: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    task = await _get_task(session, task_id)
    return await _set_status(session, task, TASK_STATUS_COMPLETED, user=user, request=request)


@router.post("/{task_id}/skip", response_model=TaskOut)
async def skip_task(
    task_id: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    task = await _get_task(session, task_id)
    return await _set_status(session, task, TASK_STATUS_SKIPPED, user=user, request=request)


@router.post("/{task_id}/snooze", response_model=TaskOut)
async def snooze_task(
    task_id: int,
    payload: TaskSnoozeIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    task = await _get_task(session, task_id)
    if task.status in (TASK_STATUS_COMPLETED, TASK_STATUS_SKIPPED):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="task_already_closed")
    until = to_local_naive(payload.until)
    if until <= now_local_naive():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="snooze_until_in_past")
    task.status = TASK_STATUS_SNOOZED
    task.snoozed_until = until
    await session.commit()
    await session.refresh(task)
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    task = await _get_task(session, task_id)
    await session.delete(task)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
