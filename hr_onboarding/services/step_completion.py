from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import (
    CANDIDATE_STATUS_OFFER_PENDING,
    CANDIDATE_STATUS_OFFER_SENT,
    EMAIL_STATUS_CANCELLED,
    EMAIL_STATUS_FAILED,
    EMAIL_STATUS_PENDING,
    EMAIL_STATUS_SENT,
    EMAIL_STATUS_SKIPPED,
    EMAIL_TYPE_OFFER_LETTER,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_SCHEDULED,
    OPEN_EVENT_STATUSES,
    SCHEDULING_OFFER_LETTER,
    STEP_OFFER_LETTER,
    STEP_OFFER_REMINDER,
)
from hr_onboarding.core.config import settings
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.models.email import Email
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.calendar import publish_event, withdraw_event
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.email import send_candidate_email
from hr_onboarding.services.placeholders import placeholder_tokens, render_email
from hr_onboarding.services.step_schedule import event_type_for_step, event_window, resolve_step_schedule
from hr_onboarding.services.workflow import (
    StepSnapshot,
    find_department_step,
    load_candidate_anchors,
    open_event_for_step,
    snapshot_step,
    step_rule,
)

logger = logging.getLogger("onb.steps")

RESULT_COMPLETED = "completed"
RESULT_SKIPPED = "skipped"
RESULT_UNSCHEDULED = "unscheduled"


class StepCompletionError(ValueError):
    pass


@dataclass
class StepActionResult:
    candidate_id: int
    step_number: int
    status: str
    event_id: int | None = None
    email_id: int | None = None
    detail: str | None = None
    auto_scheduled_event_ids: list[int] = field(default_factory=list)


async def _step_snapshot(session: AsyncSession, candidate: Candidate, step_number: int) -> StepSnapshot:
    step = await find_department_step(session, candidate.department, step_number=step_number)
    if step is None:
        raise StepCompletionError("step_not_found")
    return snapshot_step(step)


async def _already_done(session: AsyncSession, candidate: Candidate, snapshot: StepSnapshot) -> bool:
    completed_event = (
        await session.execute(
            select(ScheduledEvent.event_id)
            .where(
                ScheduledEvent.candidate_id == candidate.candidate_id,
                ScheduledEvent.step_number == snapshot.step_number,
                ScheduledEvent.status == EVENT_STATUS_COMPLETED,
            )
            .limit(1)
        )
    ).scalar()
    if completed_event is None or snapshot.email_template_type is None:
        return False
    sent_email = (
        await session.execute(
            select(Email.email_id)
            .where(
                Email.candidate_id == candidate.candidate_id,
                Email.email_type == snapshot.email_template_type,
                Email.status == EMAIL_STATUS_SENT,
            )
            .limit(1)
        )
    ).scalar()
    return sent_email is not None


async def _existing_notification(session: AsyncSession, candidate: Candidate, email_type: str, event: ScheduledEvent | None) -> Email | None:
    """An email that already covers this step: one tied to the open event, or a recent one of the same type."""
    if event is not None:
        linked = (
            await session.execute(
                select(Email)
                .where(Email.event_id == event.event_id, Email.status.in_([EMAIL_STATUS_SENT, EMAIL_STATUS_SKIPPED]))
                .order_by(Email.created_at.desc())
                .limit(1)
            )
        ).scalars().first()
        if linked is not None:
            return linked
    window_start = now_local_naive() - timedelta(minutes=settings.duplicate_email_window_minutes)
    return (
        await session.execute(
            select(Email)
            .where(
                Email.candidate_id == candidate.candidate_id,
                Email.email_type == email_type,
                Email.status.in_([EMAIL_STATUS_SENT, EMAIL_STATUS_PENDING]),
                Email.created_at >= window_start,
            )
            .order_by(Email.created_at.desc())
            .limit(1)
        )
    ).scalars().first()


async def _close_open_events(session: AsyncSession, candidate_id: int, step_number: int, new_status: str) -> None:
    await session.execute(
        update(ScheduledEvent)
        .where(
            ScheduledEvent.candidate_id == candidate_id,
            ScheduledEvent.step_number == step_number,
            ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
        )
        .values(status=new_status, updated_at=now_local_naive())
        .execution_options(synchronize_session="fetch")
    )


def _attachments_for(snapshot: StepSnapshot, candidate: Candidate, event: ScheduledEvent | None, explicit: list[str] | None) -> list[str]:
    if explicit:
        return list(explicit)
    if event is not None and event.attachment_paths:
        return list(event.attachment_paths)
    if snapshot.step_type == STEP_OFFER_LETTER and candidate.offer_letter_path:
        return [candidate.offer_letter_path]
    return []


async def complete_step(
    session: AsyncSession,
    candidate: Candidate,
    step_number: int,
    *,
    company: CompanySettings,
    actor_email: str | None = None,
    request_id: str | None = None,
    attachment_paths: list[str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> StepActionResult:
    """Send a step's email and mark the step done.

    Does not commit, except when the email send fails: the FAILED email row is
    committed for audit before StepCompletionError("email_send_failed") is raised.
    """
    snapshot = await _step_snapshot(session, candidate, step_number)

    if await _already_done(session, candidate, snapshot):
        await _close_open_events(session, candidate.candidate_id, step_number, EVENT_STATUS_COMPLETED)
        return StepActionResult(candidate.candidate_id, step_number, RESULT_SKIPPED, detail="already_completed")
    if snapshot.step_type == STEP_OFFER_REMINDER and candidate.offer_signed_at is not None:
        await _close_open_events(session, candidate.candidate_id, step_number, EVENT_STATUS_CANCELLED)
        return StepActionResult(candidate.candidate_id, step_number, RESULT_SKIPPED, detail="offer_already_signed")

    if snapshot.email_template_id is None or not snapshot.email_template_active:
        raise StepCompletionError("step_email_template_missing")
    if not candidate.email:
        raise StepCompletionError("candidate_email_missing")

    open_event = await open_event_for_step(session, candidate.candidate_id, step_number)
    attachments = _attachments_for(snapshot, candidate, open_event, attachment_paths)
    if snapshot.email_template_type == EMAIL_TYPE_OFFER_LETTER and not attachments:
        raise StepCompletionError("offer_letter_attachment_required")

    detail = None
    email = await _existing_notification(session, candidate, snapshot.email_template_type, open_event)
    if email is not None:
        detail = "email_already_sent"
    else:
        extra: dict[str, Any] = {}
        if open_event is not None and open_event.meeting_link:
            extra["meetingLink"] = open_event.meeting_link
        if overrides:
            extra.update(overrides)
        tokens = await placeholder_tokens(session, company=company, candidate=candidate, overrides=extra)
        rendered = render_email(snapshot.email_subject, snapshot.email_body, tokens)
        email = await send_candidate_email(
            session,
            candidate_id=candidate.candidate_id,
            to_email=candidate.email,
            email_type=snapshot.email_template_type,
            subject=rendered.subject,
            body=rendered.body,
            template_id=snapshot.email_template_id,
            event_id=open_event.event_id if open_event else None,
            attachment_paths=attachments,
        )
        if email.status == EMAIL_STATUS_FAILED:
            await log_activity(
                session,
                candidate_id=candidate.candidate_id,
                action="STEP_EMAIL_FAILED",
                description=f"Step {step_number} email failed",
                actor_email=actor_email,
                meta_json={"email_id": email.email_id, "error": email.error},
                request_id=request_id,
            )
            await session.commit()
            raise StepCompletionError("email_send_failed")

    now = now_local_naive()
    if open_event is not None:
        await _close_open_events(session, candidate.candidate_id, step_number, EVENT_STATUS_COMPLETED)
        event_id = open_event.event_id
    else:
        start_at, end_at = event_window(snapshot.rule, now)
        record = ScheduledEvent(
            candidate_id=candidate.candidate_id,
            step_number=step_number,
            event_type=event_type_for_step(snapshot.step_type),
            title=f"{snapshot.title} - {candidate.full_name}",
            description=snapshot.description,
            start_time=start_at,
            end_time=end_at,
            status=EVENT_STATUS_COMPLETED,
            attendees=[candidate.email],
            attachment_paths=attachments or None,
            meta_json={"source": "completion"},
        )
        session.add(record)
        await session.flush()
        event_id = record.event_id
        if email.event_id is None:
            email.event_id = event_id

    if snapshot.step_type == STEP_OFFER_LETTER:
        candidate.offer_sent_at = now
        if candidate.status == CANDIDATE_STATUS_OFFER_PENDING:
            candidate.status = CANDIDATE_STATUS_OFFER_SENT
        if attachments and not candidate.offer_letter_path:
            candidate.offer_letter_path = attachments[0]

    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action="STEP_COMPLETED",
        description=f"Step {step_number} ({snapshot.title}) completed",
        actor_email=actor_email,
        meta_json={"step_number": step_number, "event_id": event_id, "email_id": email.email_id, "email_status": email.status},
        request_id=request_id,
    )
    await session.flush()

    auto_ids: list[int] = []
    if snapshot.step_type == STEP_OFFER_LETTER:
        auto_ids = await schedule_offer_letter_steps(session, candidate)

    return StepActionResult(
        candidate_id=candidate.candidate_id,
        step_number=step_number,
        status=RESULT_COMPLETED,
        event_id=event_id,
        email_id=email.email_id,
        detail=detail,
        auto_scheduled_event_ids=auto_ids,
    )


async def schedule_offer_letter_steps(session: AsyncSession, candidate: Candidate) -> list[int]:
    """Create events for auto steps anchored on the offer letter that are not scheduled yet."""
    steps = (
        await session.execute(
            select(DepartmentStepTemplate)
            .where(
                DepartmentStepTemplate.department == candidate.department,
                DepartmentStepTemplate.is_active.is_(True),
                DepartmentStepTemplate.is_auto.is_(True),
                DepartmentStepTemplate.scheduling_method == SCHEDULING_OFFER_LETTER,
                DepartmentStepTemplate.step_type != STEP_OFFER_LETTER,
            )
            .order_by(DepartmentStepTemplate.step_number.asc())
        )
    ).scalars().unique().all()
    if not steps:
        return []

    anchors = await load_candidate_anchors(session, candidate)
    created: list[int] = []
    for step in steps:
        if await open_event_for_step(session, candidate.candidate_id, step.step_number) is not None:
            continue
        rule = step_rule(step)
        resolved = resolve_step_schedule(rule, anchors)
        if not resolved.is_scheduled:
            logger.info(
                "offer_step_not_resolvable",
                extra={"candidate_id": candidate.candidate_id, "step_number": step.step_number, "reason": resolved.reason},
            )
            continue
        start_at, end_at = event_window(rule, resolved.at)
        event = ScheduledEvent(
            candidate_id=candidate.candidate_id,
            step_number=step.step_number,
            event_type=event_type_for_step(step.step_type),
            title=f"{step.title} - {candidate.full_name}",
            description=step.description,
            start_time=start_at,
            end_time=end_at,
            status=EVENT_STATUS_SCHEDULED,
            attendees=[candidate.email] if candidate.email else None,
            meta_json={"source": "offer_letter_auto", "step_id": step.step_id, "anchor": resolved.anchor_source},
        )
        session.add(event)
        await session.flush()
        await publish_event(event, with_meet=False)
        created.append(event.event_id)
    return created


async def unschedule_step(
    session: AsyncSession,
    candidate: Candidate,
    step_number: int,
    *,
    actor_email: str | None = None,
    request_id: str | None = None,
) -> StepActionResult:
    event = await open_event_for_step(session, candidate.candidate_id, step_number)
    if event is None:
        raise StepCompletionError("scheduled_event_not_found")

    await withdraw_event(event)
    event.status = EVENT_STATUS_CANCELLED
    event.meta_json = {**(event.meta_json or {}), "cancel_reason": "unscheduled"}
    await session.execute(
        update(Email)
        .where(Email.event_id == event.event_id, Email.status == EMAIL_STATUS_PENDING)
        .values(status=EMAIL_STATUS_CANCELLED)
        .execution_options(synchronize_session="fetch")
    )
    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action="STEP_UNSCHEDULED",
        description=f"Step {step_number} unscheduled",
        actor_email=actor_email,
        meta_json={"event_id": event.event_id},
        request_id=request_id,
    )
    await session.flush()
    return StepActionResult(candidate.candidate_id, step_number, RESULT_UNSCHEDULED, event_id=event.event_id)
