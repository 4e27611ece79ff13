from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.api import deps
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.roles import ADMIN_ROLES, ALL_ROLES
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.request_context import get_request_context
from hr_onboarding.schemas.department_step import (
    DepartmentStepCreateIn,
    DepartmentStepOut,
    DepartmentStepUpdateIn,
    StepMoveIn,
    StepReorderIn,
)
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.department_steps import (
    StepConfigError,
    create_department_step,
    initialize_default_steps,
    update_department_step,
)
from hr_onboarding.services.step_order import StepOrderError, delete_step, move_step, swap_step_numbers
from hr_onboarding.services.workflow import list_department_steps

router = APIRouter(prefix="/department-steps", tags=["department-steps"])


def _config_error(exc: StepConfigError) -> HTTPException:
    if exc.code == "email_template_not_found":
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.code)
    if exc.code == "department_steps_already_exist":
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.code)
    if exc.missing:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": exc.code, "missing": exc.missing})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.code)


async def _get_step(session: AsyncSession, step_id: int) -> DepartmentStepTemplate:
    step = await session.get(DepartmentStepTemplate, step_id)
    if not step:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="step_not_found")
    return step


@router.get("/{department}", response_model=list[DepartmentStepOut])
async def list_steps(
    department: str,
    include_inactive: bool = True,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    return await list_department_steps(session, department, active_only=not include_inactive)


@router.post("", response_model=DepartmentStepOut, status_code=status.HTTP_201_CREATED)
async def create_step(
    payload: DepartmentStepCreateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    try:
        step = await create_department_step(session, payload.model_dump())
    except StepConfigError as exc:
        raise _config_error(exc) from exc
    except StepOrderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    await log_activity(
        session,
        action="DEPARTMENT_STEP_CREATED",
        description=f"{step.department} step {step.step_number}: {step.title}",
        actor_email=user.email,
        meta_json={"step_id": step.step_id},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(step)
    return step


@router.put("/{step_id}", response_model=DepartmentStepOut)
async def update_step(
    step_id: int,
    payload: DepartmentStepUpdateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    step = await _get_step(session, step_id)
    try:
        await update_department_step(session, step, payload.model_dump(exclude_unset=True))
    except StepConfigError as exc:
        raise _config_error(exc) from exc
    except StepOrderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    await log_activity(
        session,
        action="DEPARTMENT_STEP_UPDATED",
        description=f"{step.department} step {step.step_number}: {step.title}",
        actor_email=user.email,
        meta_json={"step_id": step.step_id, "fields": sorted(payload.model_dump(exclude_unset=True))},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(step)
    return step


@router.delete("/{step_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_step(
    step_id: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    step = await _get_step(session, step_id)
    department, number, title = step.department, step.step_number, step.title
    await delete_step(session, step)
    await log_activity(
        session,
        action="DEPARTMENT_STEP_DELETED",
        description=f"{department} step {number}: {title}",
        actor_email=user.email,
        meta_json={"step_id": step_id},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/reorder", response_model=list[DepartmentStepOut])
async def reorder_steps(
    payload: StepReorderIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    step_a = await _get_step(session, payload.step_id_a)
    step_b = await _get_step(session, payload.step_id_b)
    try:
        await swap_step_numbers(session, step_a, step_b)
    except StepOrderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="step_number_conflict") from exc
    await session.commit()
    return await list_department_steps(session, step_a.department)


@router.post("/{step_id}/move", response_model=list[DepartmentStepOut])
async def move_step_route(
    step_id: int,
    payload: StepMoveIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    step = await _get_step(session, step_id)
    try:
        await move_step(session, step, payload.direction)
    except StepOrderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="step_number_conflict") from exc
    await session.commit()
    return await list_department_steps(session, step.department)


@router.post("/init-defaults/{department}", response_model=list[DepartmentStepOut], status_code=status.HTTP_201_CREATED)
async def init_default_steps(
    department: str,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    try:
        await initialize_default_steps(session, department)
    except StepConfigError as exc:
        raise _config_error(exc) from exc
    await log_activity(
        session,
        action="DEPARTMENT_STEPS_INITIALIZED",
        description=f"Default steps created for {department.strip()}",
        actor_email=user.email,
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    return await list_department_steps(session, department.strip())


@router.get("", response_model=list[str])
async def list_step_departments(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    rows = await session.execute(
        select(DepartmentStepTemplate.department).distinct().order_by(DepartmentStepTemplate.department.asc())
    )
    return [row for row in rows.scalars().all()]
