from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.core.roles import Role
from hr_onboarding.models.user import HrUser


async def resolve_hr_user_by_email(session: AsyncSession, email: str) -> HrUser | None:
    stmt = select(HrUser).where(func.lower(HrUser.email) == email.strip().lower()).limit(1)
    hr_user = (await session.execute(stmt)).scalars().one_or_none()
    if hr_user and hr_user.is_active:
        hr_user.last_login_at = now_local_naive()
        await session.commit()
    return hr_user


async def is_last_admin(session: AsyncSession, user_id: int) -> bool:
    count_stmt = select(func.count(HrUser.user_id)).where(
        HrUser.role == Role.HR_ADMIN.value,
        HrUser.is_active.is_(True),
    )
    count = (await session.execute(count_stmt)).scalar() or 0
    if count == 0:
        return True
    if count > 1:
        return False
    current = await session.get(HrUser, user_id)
    if not current or not current.is_active:
        return False
    return current.role == Role.HR_ADMIN.value


async def prevent_last_admin_change(
    session: AsyncSession,
    *,
    hr_user: HrUser,
    new_role: str | None,
    new_is_active: bool | None,
) -> None:
    if hr_user.role != Role.HR_ADMIN.value or not hr_user.is_active:
        return
    keeps_admin = (new_role is None or new_role == Role.HR_ADMIN.value) and new_is_active is not False
    if keeps_admin:
        return
    if await is_last_admin(session, hr_user.user_id):
        raise ValueError("cannot_modify_last_admin")


async def ensure_admin_user(session: AsyncSession, email: str, *, full_name: str | None = None) -> bool:
    """Create or promote the given email to an active hr_admin. Returns True when something changed."""
    normalized = email.strip().lower()
    stmt = select(HrUser).where(func.lower(HrUser.email) == normalized).limit(1)
    hr_user = (await session.execute(stmt)).scalars().one_or_none()
    if hr_user is None:
        session.add(HrUser(email=normalized, full_name=full_name, role=Role.HR_ADMIN.value, is_active=True))
        await session.commit()
        return True
    if hr_user.role == Role.HR_ADMIN.value and hr_user.is_active:
        return False
    hr_user.role = Role.HR_ADMIN.value
    hr_user.is_active = True
    await session.commit()
    return True
