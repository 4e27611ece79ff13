"""Apply one department step to many candidates.

Each candidate is an independent unit of work (resolve, event, calendar, email,
activity). The event and email rows are committed as soon as the provider call
returns, so a later failure in the same item never erases the record of a sent
email. A failed item is reported and the loop moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import (
    EMAIL_STATUS_FAILED,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_SCHEDULED,
    SCHEDULING_MANUAL,
    STEP_OFFER_LETTER,
)
from hr_onboarding.core.datetime_utils import to_local_naive
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.schemas.batch import BatchItemResult, BatchPreviewItem
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.calendar import publish_event
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.email import send_candidate_email
from hr_onboarding.services.placeholders import placeholder_tokens, render_email, render_text
from hr_onboarding.services.step_schedule import event_type_for_step, event_window, resolve_step_schedule
from hr_onboarding.services.workflow import StepSnapshot, find_department_step, load_candidate_anchors, snapshot_step

logger = logging.getLogger("onb.batch")


class BatchScheduleError(ValueError):
    pass


@dataclass(frozen=True)
class BatchRequest:
    candidate_ids: Sequence[int]
    step_number: int | None = None
    step_type: str | None = None
    department: str | None = None
    mode: Literal["exact", "computed"] = "computed"
    date_time: datetime | None = None
    duration_minutes: int | None = None
    attachment_paths: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _Slot:
    start: datetime | None
    anchor_source: str | None = None
    error: str | None = None


async def resolve_batch_step(session: AsyncSession, request: BatchRequest) -> StepSnapshot:
    """Find the step once for the whole batch and freeze it into plain values."""
    if not request.candidate_ids:
        raise BatchScheduleError("no_candidates_selected")
    if request.mode == "exact" and request.date_time is None:
        raise BatchScheduleError("date_time_required_for_exact_mode")

    department = (request.department or "").strip()
    if not department:
        rows = (
            await session.execute(
                select(Candidate.candidate_id, Candidate.department).where(
                    Candidate.candidate_id.in_(list(request.candidate_ids))
                )
            )
        ).all()
        by_id = {candidate_id: dept for candidate_id, dept in rows}
        department = next((by_id[cid] for cid in request.candidate_ids if cid in by_id), "")
        if not department:
            raise BatchScheduleError("no_candidates_found")

    step = await find_department_step(
        session,
        department,
        step_number=request.step_number,
        step_type=request.step_type if request.step_number is None else None,
    )
    if step is None:
        raise BatchScheduleError("step_not_found")

    snapshot = snapshot_step(step)
    if request.mode == "computed" and snapshot.rule.scheduling_method == SCHEDULING_MANUAL:
        raise BatchScheduleError("manual_step_requires_exact_time")
    if snapshot.email_template_id is None or not snapshot.email_template_active:
        raise BatchScheduleError("step_email_template_missing")
    return snapshot


async def _load_candidate(session: AsyncSession, snapshot: StepSnapshot, candidate_id: int) -> tuple[Candidate | None, str | None]:
    candidate = await session.get(Candidate, candidate_id)
    if candidate is None:
        return None, "candidate_not_found"
    if candidate.department != snapshot.department:
        return candidate, "department_mismatch"
    return candidate, None


async def _slot_for(session: AsyncSession, snapshot: StepSnapshot, candidate: Candidate, request: BatchRequest) -> _Slot:
    if request.mode == "exact":
        return _Slot(start=to_local_naive(request.date_time))
    anchors = await load_candidate_anchors(session, candidate)
    resolved = resolve_step_schedule(snapshot.rule, anchors)
    if not resolved.is_scheduled:
        return _Slot(start=None, error=f"anchor_unknown:{resolved.reason or resolved.status}")
    return _Slot(start=resolved.at, anchor_source=resolved.anchor_source)


async def preview_batch(session: AsyncSession, request: BatchRequest) -> tuple[StepSnapshot, list[BatchPreviewItem]]:
    snapshot = await resolve_batch_step(session, request)
    items: list[BatchPreviewItem] = []
    for candidate_id in request.candidate_ids:
        candidate, error = await _load_candidate(session, snapshot, candidate_id)
        if error:
            items.append(
                BatchPreviewItem(
                    candidate_id=candidate_id,
                    candidate_name=candidate.full_name if candidate else None,
                    error=error,
                )
            )
            continue
        slot = await _slot_for(session, snapshot, candidate, request)
        items.append(
            BatchPreviewItem(
                candidate_id=candidate_id,
                candidate_name=candidate.full_name,
                scheduled_for=slot.start,
                anchor_source=slot.anchor_source,
                error=slot.error,
            )
        )
    return snapshot, items


async def _schedule_one(
    session: AsyncSession,
    snapshot: StepSnapshot,
    candidate_id: int,
    request: BatchRequest,
    *,
    company: CompanySettings,
    actor_email: str | None,
    request_id: str | None,
) -> BatchItemResult:
    candidate, error = await _load_candidate(session, snapshot, candidate_id)
    if error:
        return BatchItemResult(candidate_id=candidate_id, success=False, error=error)
    if not candidate.email:
        return BatchItemResult(candidate_id=candidate_id, success=False, error="missing_email")

    slot = await _slot_for(session, snapshot, candidate, request)
    if slot.start is None:
        return BatchItemResult(candidate_id=candidate_id, success=False, error=slot.error)

    start_at, end_at = event_window(snapshot.rule, slot.start, request.duration_minutes)
    tokens = await placeholder_tokens(
        session,
        company=company,
        candidate=candidate,
        overrides={
            "scheduledDate": start_at.strftime("%d %b %Y"),
            "scheduledTime": start_at.strftime("%I:%M %p"),
        },
    )
    title = render_text(snapshot.title, tokens).strip() or snapshot.step_type.replace("_", " ").title()
    attachments = list(request.attachment_paths)

    event = ScheduledEvent(
        candidate_id=candidate.candidate_id,
        step_number=snapshot.step_number,
        event_type=event_type_for_step(snapshot.step_type),
        title=f"{title} - {candidate.full_name}",
        description=render_text(snapshot.description, tokens) or None,
        start_time=start_at,
        end_time=end_at,
        status=EVENT_STATUS_SCHEDULED,
        attendees=[candidate.email],
        attachment_paths=attachments or None,
        meta_json={"source": "batch", "step_id": snapshot.step_id, "mode": request.mode, "anchor": slot.anchor_source},
    )
    session.add(event)
    await session.flush()

    await publish_event(event)

    if event.meeting_link:
        tokens["{{meetingLink}}"] = event.meeting_link
    rendered = render_email(snapshot.email_subject, snapshot.email_body, tokens)
    email = await send_candidate_email(
        session,
        candidate_id=candidate.candidate_id,
        to_email=candidate.email,
        email_type=snapshot.email_template_type,
        subject=rendered.subject,
        body=rendered.body,
        template_id=snapshot.email_template_id,
        event_id=event.event_id,
        attachment_paths=attachments,
    )
    await session.commit()

    if email.status == EMAIL_STATUS_FAILED:
        event.status = EVENT_STATUS_CANCELLED
        event.meta_json = {**(event.meta_json or {}), "cancel_reason": "email_failed"}
    elif snapshot.step_type == STEP_OFFER_LETTER and attachments:
        candidate.offer_letter_path = attachments[0]

    succeeded = email.status != EMAIL_STATUS_FAILED
    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action=f"{event.event_type}_SCHEDULED" if succeeded else f"{event.event_type}_SCHEDULE_FAILED",
        description=f"Batch {snapshot.title} for {start_at:%d %b %Y %H:%M}",
        actor_email=actor_email,
        meta_json={"event_id": event.event_id, "email_id": email.email_id, "email_status": email.status},
        request_id=request_id,
    )
    await session.commit()

    return BatchItemResult(
        candidate_id=candidate.candidate_id,
        success=succeeded,
        event_id=event.event_id,
        email_id=email.email_id,
        email_status=email.status,
        scheduled_for=start_at,
        error=None if succeeded else f"email_failed:{email.error}",
    )


async def batch_schedule(
    session: AsyncSession,
    request: BatchRequest,
    *,
    company: CompanySettings,
    actor_email: str | None = None,
    request_id: str | None = None,
) -> tuple[StepSnapshot, list[BatchItemResult]]:
    snapshot = await resolve_batch_step(session, request)
    results: list[BatchItemResult] = []
    for candidate_id in request.candidate_ids:
        try:
            result = await _schedule_one(
                session,
                snapshot,
                candidate_id,
                request,
                company=company,
                actor_email=actor_email,
                request_id=request_id,
            )
        except Exception as exc:  # noqa: BLE001
            await session.rollback()
            logger.exception("batch_item_failed", extra={"candidate_id": candidate_id, "step_id": snapshot.step_id})
            result = BatchItemResult(candidate_id=candidate_id, success=False, error=f"unexpected_error:{type(exc).__name__}")
        results.append(result)

    logger.info(
        "batch_schedule_completed",
        extra={
            "step_id": snapshot.step_id,
            "total": len(results),
            "succeeded": sum(1 for r in results if r.success),
        },
    )
    return snapshot, results
