from __future__ import annotations

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.schemas.department_step import DepartmentStepCreateIn, DepartmentStepUpdateIn
from hr_onboarding.services.department_steps import (
    StepConfigError,
    create_department_step,
    default_steps,
    initialize_default_steps,
    update_department_step,
)


async def _step_count(session) -> int:
    return int((await session.execute(select(func.count(DepartmentStepTemplate.step_id)))).scalar() or 0)


def test_create_payload_requires_email_template():
    with pytest.raises(ValidationError) as excinfo:
        DepartmentStepCreateIn(department="Engineering", step_type="HR_INDUCTION", title="HR Induction")
    assert any(err["loc"] == ("email_template_id",) for err in excinfo.value.errors())


def test_create_payload_normalizes_time_and_rejects_unknown_values():
    payload = DepartmentStepCreateIn(
        department="Engineering",
        step_type="HR_INDUCTION",
        title="HR Induction",
        email_template_id=1,
        scheduled_time=" 9:05 ",
    )
    assert payload.scheduled_time == "09:05"
    with pytest.raises(ValidationError):
        DepartmentStepCreateIn(department="Engineering", step_type="LUNCH", title="x", email_template_id=1)
    with pytest.raises(ValidationError):
        DepartmentStepCreateIn(department="Engineering", step_type="MANUAL", title="x", email_template_id=1, scheduled_time="25:00")


async def test_service_rejects_missing_or_inactive_template_without_writing(db_session, make_template):
    values = {"department": "Engineering", "step_type": "HR_INDUCTION", "title": "HR Induction", "email_template_id": None}
    with pytest.raises(StepConfigError, match="email_template_required"):
        await create_department_step(db_session, values)

    inactive = await make_template(is_active=False)
    with pytest.raises(StepConfigError, match="email_template_inactive"):
        await create_department_step(db_session, {**values, "email_template_id": inactive.template_id})

    with pytest.raises(StepConfigError, match="email_template_not_found"):
        await create_department_step(db_session, {**values, "email_template_id": 9999})
    assert await _step_count(db_session) == 0


async def test_create_inserts_at_requested_position(db_session, make_template, make_step):
    template = await make_template()
    first = await make_step(template, step_number=1, title="First")
    second = await make_step(template, step_number=2, title="Second")

    created = await create_department_step(
        db_session,
        {
            "department": " Engineering ",
            "step_number": 2,
            "step_type": "CHECKIN_CALL",
            "title": "Check-in",
            "email_template_id": template.template_id,
        },
    )
    assert created.department == "Engineering"
    assert (first.step_number, created.step_number, second.step_number) == (1, 2, 3)


async def test_update_step_number_moves_the_step(db_session, make_template, make_step):
    template = await make_template()
    first = await make_step(template, step_number=1, title="First")
    second = await make_step(template, step_number=2, title="Second")
    await update_department_step(db_session, second, {"step_number": 1, "due_date_offset": -2})
    assert (first.step_number, second.step_number, second.due_date_offset) == (2, 1, -2)


async def test_reactivating_a_step_requires_an_active_template(db_session, make_template, make_step):
    template = await make_template(is_active=False)
    step = await make_step(template, is_active=False)

    with pytest.raises(StepConfigError, match="email_template_inactive"):
        await update_department_step(db_session, step, {"is_active": True})
    assert step.is_active is False

    replacement = await make_template(name="Induction v2")
    await update_department_step(db_session, step, {"is_active": True, "email_template_id": replacement.template_id})
    assert (step.is_active, step.email_template_id) == (True, replacement.template_id)


async def test_inactive_step_can_be_edited_without_touching_its_template(db_session, make_template, make_step):
    template = await make_template(is_active=False)
    step = await make_step(template, is_active=False)
    await update_department_step(db_session, step, {"title": "Induction (paused)"})
    assert step.title == "Induction (paused)"


def test_update_payload_rejects_null_for_required_columns():
    for field in ("step_type", "title", "is_auto", "scheduling_method", "due_date_offset", "priority", "email_template_id", "is_active"):
        with pytest.raises(ValidationError, match=f"{field}_cannot_be_null"):
            DepartmentStepUpdateIn(**{field: None})
    assert DepartmentStepUpdateIn(scheduled_time=None, duration_minutes=None).model_dump(exclude_unset=True) == {
        "scheduled_time": None,
        "duration_minutes": None,
    }


async def test_init_defaults_reports_missing_templates(db_session, make_template):
    await make_template("OFFER_LETTER")
    with pytest.raises(StepConfigError) as excinfo:
        await initialize_default_steps(db_session, "Engineering")
    assert excinfo.value.code == "email_templates_missing"
    assert "OFFER_LETTER" not in excinfo.value.missing
    assert "CUSTOM" in excinfo.value.missing
    assert await _step_count(db_session) == 0


async def test_init_defaults_falls_back_to_custom_template(db_session, make_template):
    await make_template("OFFER_LETTER")
    custom = await make_template("CUSTOM")
    steps = await initialize_default_steps(db_session, "Sales")
    assert [s.step_number for s in steps] == list(range(1, len(default_steps("Sales")) + 1))
    assert steps[8].step_type == "SALES_INDUCTION"
    assert steps[1].email_template_id == custom.template_id

    with pytest.raises(StepConfigError, match="department_steps_already_exist"):
        await initialize_default_steps(db_session, "Sales")
