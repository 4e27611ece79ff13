from __future__ import annotations

from dataclasses import dataclass, fields, replace

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.core.config import settings
from hr_onboarding.models.setting import AppSetting


@dataclass(frozen=True)
class CompanySettings:
    company_name: str
    hr_name: str
    hr_email: str
    hr_phone: str = ""
    company_address: str = ""
    office_timings: str = ""
    onboarding_form_url: str = ""
    primary_color: str = ""
    secondary_color: str = ""


COMPANY_SETTING_KEYS = tuple(f.name for f in fields(CompanySettings))


def default_company_settings() -> CompanySettings:
    return CompanySettings(
        company_name=settings.company_name,
        hr_name=settings.hr_name,
        hr_email=settings.hr_email,
        onboarding_form_url=settings.onboarding_form_url,
    )


async def load_company_settings(session: AsyncSession) -> CompanySettings:
    """Stored values override the configured defaults; blank stored values are ignored."""
    rows = (
        await session.execute(select(AppSetting).where(AppSetting.key.in_(COMPANY_SETTING_KEYS)))
    ).scalars().all()
    stored = {row.key: row.value for row in rows if row.value not in (None, "")}
    return replace(default_company_settings(), **stored)


async def save_company_settings(session: AsyncSession, values: dict[str, str | None]) -> CompanySettings:
    for key, value in values.items():
        if key not in COMPANY_SETTING_KEYS:
            raise ValueError(f"unknown_setting:{key}")
        row = await session.get(AppSetting, key)
        if row is None:
            session.add(AppSetting(key=key, value=value))
        else:
            row.value = value
    await session.flush()
    return await load_company_settings(session)
