from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import (
    EMAIL_STATUS_SENT,
    EVENT_STATUS_COMPLETED,
    OPEN_EVENT_STATUSES,
    STEP_OFFER_LETTER,
)
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.models.email import Email
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.services.step_schedule import (
    CandidateAnchors,
    OfferEventRef,
    StepRule,
    resolve_step_schedule,
)

STEP_STATE_COMPLETED = "completed"
STEP_STATE_SCHEDULED = "scheduled"
STEP_STATE_UNSCHEDULED = "unscheduled"


@dataclass(frozen=True)
class StepSnapshot:
    """Plain copy of a step template and its email template, safe to use after commits and rollbacks."""

    step_id: int
    department: str
    step_number: int
    step_type: str
    title: str
    description: str | None
    is_auto: bool
    priority: str
    rule: StepRule
    email_template_id: int | None
    email_template_type: str | None
    email_subject: str | None
    email_body: str | None
    email_template_active: bool


def step_rule(step: DepartmentStepTemplate) -> StepRule:
    return StepRule(
        step_type=step.step_type,
        scheduling_method=step.scheduling_method,
        due_date_offset=step.due_date_offset or 0,
        scheduled_time=step.scheduled_time,
        duration_minutes=step.duration_minutes,
    )


def snapshot_step(step: DepartmentStepTemplate) -> StepSnapshot:
    template = step.email_template
    return StepSnapshot(
        step_id=step.step_id,
        department=step.department,
        step_number=step.step_number,
        step_type=step.step_type,
        title=step.title,
        description=step.description,
        is_auto=bool(step.is_auto),
        priority=step.priority,
        rule=step_rule(step),
        email_template_id=template.template_id if template else None,
        email_template_type=template.type if template else None,
        email_subject=template.subject if template else None,
        email_body=template.body if template else None,
        email_template_active=bool(template and template.is_active),
    )


async def list_department_steps(
    session: AsyncSession,
    department: str,
    *,
    active_only: bool = False,
) -> list[DepartmentStepTemplate]:
    stmt = select(DepartmentStepTemplate).where(DepartmentStepTemplate.department == department)
    if active_only:
        stmt = stmt.where(DepartmentStepTemplate.is_active.is_(True))
    stmt = stmt.order_by(DepartmentStepTemplate.step_number.asc())
    return list((await session.execute(stmt)).scalars().unique().all())


async def find_department_step(
    session: AsyncSession,
    department: str,
    *,
    step_number: int | None = None,
    step_type: str | None = None,
) -> DepartmentStepTemplate | None:
    stmt = select(DepartmentStepTemplate).where(
        DepartmentStepTemplate.department == department,
        DepartmentStepTemplate.is_active.is_(True),
    )
    if step_number is not None:
        stmt = stmt.where(DepartmentStepTemplate.step_number == step_number)
    if step_type is not None:
        stmt = stmt.where(DepartmentStepTemplate.step_type == step_type)
    stmt = stmt.order_by(DepartmentStepTemplate.step_number.asc()).limit(1)
    return (await session.execute(stmt)).scalars().unique().first()


async def load_candidate_anchors(session: AsyncSession, candidate: Candidate) -> CandidateAnchors:
    rows = (
        await session.execute(
            select(ScheduledEvent.start_time, ScheduledEvent.status, ScheduledEvent.created_at).where(
                ScheduledEvent.candidate_id == candidate.candidate_id,
                ScheduledEvent.event_type == STEP_OFFER_LETTER,
            )
        )
    ).all()
    return CandidateAnchors(
        expected_joining_date=candidate.expected_joining_date,
        offer_sent_at=candidate.offer_sent_at,
        offer_events=tuple(
            OfferEventRef(start_time=start, status=status, created_at=created) for start, status, created in rows
        ),
    )


async def open_event_for_step(session: AsyncSession, candidate_id: int, step_number: int) -> ScheduledEvent | None:
    stmt = (
        select(ScheduledEvent)
        .where(
            ScheduledEvent.candidate_id == candidate_id,
            ScheduledEvent.step_number == step_number,
            ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
        )
        .order_by(ScheduledEvent.created_at.desc(), ScheduledEvent.event_id.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalars().first()


async def build_workflow(session: AsyncSession, candidate: Candidate) -> list[dict[str, Any]]:
    """Per-step state of a candidate's department workflow plus the resolver's default schedule."""
    steps = await list_department_steps(session, candidate.department, active_only=True)
    anchors = await load_candidate_anchors(session, candidate)
    events = (
        await session.execute(
            select(ScheduledEvent)
            .where(ScheduledEvent.candidate_id == candidate.candidate_id, ScheduledEvent.step_number.is_not(None))
            .order_by(ScheduledEvent.created_at.asc(), ScheduledEvent.event_id.asc())
        )
    ).scalars().all()
    sent_types = set(
        (
            await session.execute(
                select(Email.email_type).where(
                    Email.candidate_id == candidate.candidate_id,
                    Email.status == EMAIL_STATUS_SENT,
                )
            )
        ).scalars().all()
    )

    latest: dict[int, ScheduledEvent] = {}
    completed_steps: set[int] = set()
    for event in events:
        if event.status == EVENT_STATUS_COMPLETED:
            completed_steps.add(event.step_number)
        if event.status in OPEN_EVENT_STATUSES:
            latest[event.step_number] = event

    out: list[dict[str, Any]] = []
    for step in steps:
        resolved = resolve_step_schedule(step_rule(step), anchors)
        open_event = latest.get(step.step_number)
        if step.step_number in completed_steps:
            state = STEP_STATE_COMPLETED
        elif open_event is not None:
            state = STEP_STATE_SCHEDULED
        else:
            state = STEP_STATE_UNSCHEDULED
        template_type = step.email_template.type if step.email_template else None
        out.append(
            {
                "step_id": step.step_id,
                "step_number": step.step_number,
                "step_type": step.step_type,
                "title": step.title,
                "is_auto": step.is_auto,
                "scheduling_method": step.scheduling_method,
                "state": state,
                "event_id": open_event.event_id if open_event else None,
                "scheduled_for": open_event.start_time if open_event else None,
                "email_sent": template_type in sent_types if template_type else False,
                "resolution": resolved.status,
                "resolved_for": resolved.at,
                "unresolved_reason": resolved.reason,
            }
        )
    return out
