from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.core.auth import get_current_user
from hr_onboarding.db.session import get_session
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.company_settings import CompanySettings, load_company_settings


async def get_db_session() -> AsyncSession:
    async for session in get_session():
        yield session


async def get_user(user: UserContext = Depends(get_current_user)) -> UserContext:
    return user


async def get_company(session: AsyncSession = Depends(get_db_session)) -> CompanySettings:
    return await load_company_settings(session)
