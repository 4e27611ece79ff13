import os

os.environ.setdefault("ONB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ONB_AUTH_MODE", "dev")
os.environ.setdefault("ONB_ENABLE_GMAIL", "false")
os.environ.setdefault("ONB_ENABLE_CALENDAR", "false")
os.environ.setdefault("ONB_ENABLE_SCHEDULER", "false")
os.environ.setdefault("ONB_REDIS_URL", "")
os.environ.setdefault("ONB_CALENDAR_TIMEZONE", "Asia/Kolkata")

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hr_onboarding.models import Base, Candidate, DepartmentStepTemplate, EmailTemplate


@pytest.fixture()
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def make_template(db_session):
    async def _make(email_type="HR_INDUCTION", *, name=None, subject="Hello {{firstName}}", body="Welcome to {{companyName}}", is_active=True):
        template = EmailTemplate(
            name=name or f"{email_type.title()} template",
            type=email_type,
            custom_email_type="OTHER" if email_type == "CUSTOM" else None,
            subject=subject,
            body=body,
            is_active=is_active,
        )
        db_session.add(template)
        await db_session.flush()
        return template

    return _make


@pytest.fixture()
def make_step(db_session):
    async def _make(template, *, department="Engineering", step_number=1, step_type="HR_INDUCTION", **extra):
        values = {
            "title": step_type.replace("_", " ").title(),
            "scheduling_method": "doj",
            "due_date_offset": 0,
            "is_auto": False,
            "priority": "MEDIUM",
        }
        values.update(extra)
        step = DepartmentStepTemplate(
            department=department,
            step_number=step_number,
            step_type=step_type,
            email_template_id=template.template_id,
            **values,
        )
        db_session.add(step)
        await db_session.flush()
        return step

    return _make


@pytest.fixture()
def make_candidate(db_session):
    async def _make(first_name="Asha", *, email="asha@example.com", department="Engineering", joining=date(2024, 6, 10), **extra):
        candidate = Candidate(
            first_name=first_name,
            last_name="Rao",
            email=email,
            department=department,
            position="Engineer",
            expected_joining_date=joining,
            **extra,
        )
        db_session.add(candidate)
        await db_session.flush()
        return candidate

    return _make
