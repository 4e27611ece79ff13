from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import (
    EMAIL_TYPE_CUSTOM,
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    SCHEDULING_DOJ,
    SCHEDULING_OFFER_LETTER,
    STEP_CEO_INDUCTION,
    STEP_CHECKIN_CALL,
    STEP_DEPARTMENT_INDUCTION,
    STEP_EMAIL_TYPE,
    STEP_FORM_REMINDER,
    STEP_HR_INDUCTION,
    STEP_OFFER_LETTER,
    STEP_OFFER_REMINDER,
    STEP_ONBOARDING_FORM,
    STEP_SALES_INDUCTION,
    STEP_TRAINING_PLAN,
    STEP_WELCOME_EMAIL,
    STEP_WHATSAPP_ADDITION,
)
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.models.email_template import EmailTemplate
from hr_onboarding.services.step_order import move_step_to, open_slot


class StepConfigError(ValueError):
    def __init__(self, code: str, *, missing: list[str] | None = None) -> None:
        super().__init__(code)
        self.code = code
        self.missing = missing or []


def default_steps(department: str) -> list[dict[str, Any]]:
    induction_type = STEP_SALES_INDUCTION if department.strip().lower() == "sales" else STEP_DEPARTMENT_INDUCTION
    return [
        {"step_type": STEP_OFFER_LETTER, "title": "Offer Letter Email", "description": "Upload and send offer letter with tracking", "icon": "📄", "is_auto": False, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 0, "priority": PRIORITY_HIGH},
        {"step_type": STEP_OFFER_REMINDER, "title": "Offer Reminder (Auto)", "description": "Auto-sends if not signed in 3 days", "icon": "⏰", "is_auto": True, "scheduling_method": SCHEDULING_OFFER_LETTER, "due_date_offset": 3, "priority": PRIORITY_MEDIUM},
        {"step_type": STEP_WELCOME_EMAIL, "title": "Day -1 Welcome Email (Auto)", "description": "Sent automatically one day before joining", "icon": "👋", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": -1, "priority": PRIORITY_MEDIUM},
        {"step_type": STEP_HR_INDUCTION, "title": "HR Induction (Auto)", "description": "Calendar invite on joining day", "icon": "🏢", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 0, "scheduled_time": "09:30", "priority": PRIORITY_HIGH},
        {"step_type": STEP_WHATSAPP_ADDITION, "title": "WhatsApp Group Addition (Auto)", "description": "Send WhatsApp group URLs via email", "icon": "💬", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 0, "priority": PRIORITY_HIGH},
        {"step_type": STEP_ONBOARDING_FORM, "title": "Onboarding Form Email (Auto)", "description": "Sent within 1 hour of joining", "icon": "📝", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 0, "priority": PRIORITY_HIGH},
        {"step_type": STEP_FORM_REMINDER, "title": "Form Reminder (Auto)", "description": "Auto-sends if not completed in 24h", "icon": "🔔", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 1, "priority": PRIORITY_MEDIUM},
        {"step_type": STEP_CEO_INDUCTION, "title": "CEO Induction", "description": "HR confirms time with CEO, then system sends invite", "icon": "👔", "is_auto": False, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 2, "priority": PRIORITY_MEDIUM},
        {"step_type": induction_type, "title": f"{department} Induction", "description": f"HR confirms time with {department} team, then system sends invite", "icon": "💼", "is_auto": False, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 3, "priority": PRIORITY_MEDIUM},
        {"step_type": STEP_TRAINING_PLAN, "title": "Training Plan Email (Auto)", "description": "Auto-sends on Day 3 with structured training", "icon": "📚", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 3, "priority": PRIORITY_MEDIUM},
        {"step_type": STEP_CHECKIN_CALL, "title": "HR Check-in Call (Day 7) (Auto)", "description": "Auto-scheduled 7 days after joining", "icon": "📞", "is_auto": True, "scheduling_method": SCHEDULING_DOJ, "due_date_offset": 7, "priority": PRIORITY_MEDIUM},
    ]


async def require_active_email_template(session: AsyncSession, template_id: int | None) -> EmailTemplate:
    if template_id is None:
        raise StepConfigError("email_template_required")
    template = await session.get(EmailTemplate, template_id)
    if template is None:
        raise StepConfigError("email_template_not_found")
    if not template.is_active:
        raise StepConfigError("email_template_inactive")
    return template


async def create_department_step(session: AsyncSession, values: dict[str, Any]) -> DepartmentStepTemplate:
    """Validate, open a slot and insert. ``values`` is a StepCreate dump."""
    await require_active_email_template(session, values.get("email_template_id"))
    data = dict(values)
    department = data.pop("department").strip()
    requested = data.pop("step_number", None)
    number = await open_slot(session, department, requested)
    step = DepartmentStepTemplate(department=department, step_number=number, **data)
    session.add(step)
    await session.flush()
    return step


async def update_department_step(
    session: AsyncSession,
    step: DepartmentStepTemplate,
    values: dict[str, Any],
) -> DepartmentStepTemplate:
    """Apply a partial update. Editing offsets or times never touches already scheduled events."""
    data = dict(values)
    # An active step must always point at an active template, including on re-activation.
    if "email_template_id" in data or data.get("is_active", step.is_active):
        await require_active_email_template(session, data.get("email_template_id", step.email_template_id))
    new_number = data.pop("step_number", None)
    data.pop("department", None)
    for field, value in data.items():
        setattr(step, field, value)
    await session.flush()
    if new_number is not None:
        await move_step_to(session, step, new_number)
    return step


async def _template_for_step_type(session: AsyncSession, step_type: str) -> EmailTemplate | None:
    email_type = STEP_EMAIL_TYPE.get(step_type, EMAIL_TYPE_CUSTOM)
    stmt = (
        select(EmailTemplate)
        .where(EmailTemplate.type == email_type, EmailTemplate.is_active.is_(True))
        .order_by(EmailTemplate.updated_at.desc(), EmailTemplate.template_id.desc())
        .limit(1)
    )
    template = (await session.execute(stmt)).scalars().first()
    if template is None and email_type != EMAIL_TYPE_CUSTOM:
        stmt = (
            select(EmailTemplate)
            .where(EmailTemplate.type == EMAIL_TYPE_CUSTOM, EmailTemplate.is_active.is_(True))
            .order_by(EmailTemplate.template_id.asc())
            .limit(1)
        )
        template = (await session.execute(stmt)).scalars().first()
    return template


async def initialize_default_steps(session: AsyncSession, department: str) -> list[DepartmentStepTemplate]:
    department = department.strip()
    if not department:
        raise StepConfigError("department_required")
    existing = (
        await session.execute(
            select(func.count(DepartmentStepTemplate.step_id)).where(DepartmentStepTemplate.department == department)
        )
    ).scalar() or 0
    if existing:
        raise StepConfigError("department_steps_already_exist")

    defaults = default_steps(department)
    templates: dict[str, EmailTemplate] = {}
    missing: list[str] = []
    for entry in defaults:
        template = await _template_for_step_type(session, entry["step_type"])
        if template is None:
            missing.append(STEP_EMAIL_TYPE.get(entry["step_type"], EMAIL_TYPE_CUSTOM))
        else:
            templates[entry["step_type"]] = template
    if missing:
        raise StepConfigError("email_templates_missing", missing=sorted(set(missing)))

    created: list[DepartmentStepTemplate] = []
    for number, entry in enumerate(defaults, start=1):
        step = DepartmentStepTemplate(
            department=department,
            step_number=number,
            email_template_id=templates[entry["step_type"]].template_id,
            **entry,
        )
        session.add(step)
        created.append(step)
    await session.flush()
    return created
