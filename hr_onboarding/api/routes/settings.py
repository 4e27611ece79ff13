from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.api import deps
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.roles import ADMIN_ROLES, ALL_ROLES, Role
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.models.setting import CustomPlaceholder
from hr_onboarding.models.user import HrUser
from hr_onboarding.request_context import get_request_context
from hr_onboarding.schemas.settings import (
    CompanySettingsOut,
    CompanySettingsUpdateIn,
    CustomPlaceholderIn,
    CustomPlaceholderOut,
    HrUserCreateIn,
    HrUserOut,
    HrUserUpdateIn,
)
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.company_settings import CompanySettings, save_company_settings
from hr_onboarding.services.placeholders import CANDIDATE_PLACEHOLDER_KEYS, COMPANY_PLACEHOLDER_KEYS
from hr_onboarding.services.user_service import prevent_last_admin_change

router = APIRouter(prefix="/settings", tags=["settings"])

_RESERVED_KEYS = {key.lower() for key in (*CANDIDATE_PLACEHOLDER_KEYS, *COMPANY_PLACEHOLDER_KEYS)}


def _check_role(role: str | None) -> None:
    if role is None:
        return
    try:
        Role(role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_role") from exc


async def _get_placeholder(session: AsyncSession, placeholder_id: int) -> CustomPlaceholder:
    row = await session.get(CustomPlaceholder, placeholder_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="placeholder_not_found")
    return row


async def _ensure_placeholder_key_free(session: AsyncSession, key: str, *, exclude_id: int | None = None) -> None:
    if key.lower() in _RESERVED_KEYS:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="placeholder_key_reserved")
    stmt = select(CustomPlaceholder.placeholder_id).where(func.lower(CustomPlaceholder.placeholder_key) == key.lower())
    if exclude_id is not None:
        stmt = stmt.where(CustomPlaceholder.placeholder_id != exclude_id)
    if (await session.execute(stmt.limit(1))).scalar() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="placeholder_key_taken")


async def _get_hr_user(session: AsyncSession, user_id: int) -> HrUser:
    hr_user = await session.get(HrUser, user_id)
    if not hr_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user_not_found")
    return hr_user


@router.get("/company", response_model=CompanySettingsOut)
async def get_company_settings(
    company: CompanySettings = Depends(deps.get_company),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    return CompanySettingsOut(**asdict(company))


@router.put("/company", response_model=CompanySettingsOut)
async def update_company_settings(
    payload: CompanySettingsUpdateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    values = payload.model_dump(exclude_unset=True)
    company = await save_company_settings(session, values)
    await log_activity(
        session,
        action="COMPANY_SETTINGS_UPDATED",
        description="Company settings updated",
        actor_email=user.email,
        meta_json={"fields": sorted(values)},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    return CompanySettingsOut(**asdict(company))


@router.get("/placeholders", response_model=list[CustomPlaceholderOut])
async def list_custom_placeholders(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    rows = await session.execute(select(CustomPlaceholder).order_by(CustomPlaceholder.placeholder_key.asc()))
    return rows.scalars().all()


@router.post("/placeholders", response_model=CustomPlaceholderOut, status_code=status.HTTP_201_CREATED)
async def create_custom_placeholder(
    payload: CustomPlaceholderIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    await _ensure_placeholder_key_free(session, payload.placeholder_key)
    row = CustomPlaceholder(
        placeholder_key=payload.placeholder_key,
        value=payload.value,
        description=payload.description,
        is_active=1 if payload.is_active else 0,
    )
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return row


@router.put("/placeholders/{placeholder_id}", response_model=CustomPlaceholderOut)
async def update_custom_placeholder(
    placeholder_id: int,
    payload: CustomPlaceholderIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    row = await _get_placeholder(session, placeholder_id)
    if payload.placeholder_key != row.placeholder_key:
        await _ensure_placeholder_key_free(session, payload.placeholder_key, exclude_id=placeholder_id)
    row.placeholder_key = payload.placeholder_key
    row.value = payload.value
    row.description = payload.description
    row.is_active = 1 if payload.is_active else 0
    await session.commit()
    await session.refresh(row)
    return row


@router.delete("/placeholders/{placeholder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_custom_placeholder(
    placeholder_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    row = await _get_placeholder(session, placeholder_id)
    await session.delete(row)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/departments", response_model=list[str])
async def list_departments(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    from_candidates = (await session.execute(select(Candidate.department).distinct())).scalars().all()
    from_steps = (await session.execute(select(DepartmentStepTemplate.department).distinct())).scalars().all()
    return sorted({d for d in (*from_candidates, *from_steps) if d})


@router.get("/users", response_model=list[HrUserOut])
async def list_hr_users(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    rows = await session.execute(select(HrUser).order_by(HrUser.email.asc()))
    return rows.scalars().all()


@router.post("/users", response_model=HrUserOut, status_code=status.HTTP_201_CREATED)
async def create_hr_user(
    payload: HrUserCreateIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    _check_role(payload.role)
    email = payload.email.strip().lower()
    existing = (
        await session.execute(select(HrUser.user_id).where(func.lower(HrUser.email) == email).limit(1))
    ).scalar()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="user_exists")
    hr_user = HrUser(email=email, full_name=payload.full_name, role=payload.role, is_active=True)
    session.add(hr_user)
    await session.commit()
    await session.refresh(hr_user)
    return hr_user


@router.put("/users/{user_id}", response_model=HrUserOut)
async def update_hr_user(
    user_id: int,
    payload: HrUserUpdateIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    _check_role(payload.role)
    hr_user = await _get_hr_user(session, user_id)
    try:
        await prevent_last_admin_change(session, hr_user=hr_user, new_role=payload.role, new_is_active=payload.is_active)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(hr_user, key, value)
    await session.commit()
    await session.refresh(hr_user)
    return hr_user


@router.delete("/users/{user_id}", response_model=HrUserOut)
async def deactivate_hr_user(
    user_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    hr_user = await _get_hr_user(session, user_id)
    try:
        await prevent_last_admin_change(session, hr_user=hr_user, new_role=None, new_is_active=False)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    hr_user.is_active = False
    await session.commit()
    await session.refresh(hr_user)
    return hr_user
