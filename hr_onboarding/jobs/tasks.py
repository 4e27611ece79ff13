from __future__ import annotations

import logging

from sqlalchemy import select, update

from hr_onboarding.constants import OPEN_EVENT_STATUSES, TASK_STATUS_PENDING, TASK_STATUS_SNOOZED
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.session import SessionLocal
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.models.task import Task
from hr_onboarding.services.company_settings import load_company_settings
from hr_onboarding.services.step_completion import StepCompletionError, complete_step

logger = logging.getLogger("onb.jobs")

AUTO_COMPLETE_ERROR_KEY = "auto_complete_error"


async def run_due_step_completions(session_factory=SessionLocal) -> int:
    """Complete step events whose start time has passed. Returns how many were completed."""
    now = now_local_naive()
    completed = 0
    async with session_factory() as session:
        company = await load_company_settings(session)
        rows = (
            await session.execute(
                select(ScheduledEvent.event_id, ScheduledEvent.candidate_id, ScheduledEvent.step_number, ScheduledEvent.meta_json)
                .where(
                    ScheduledEvent.status.in_(OPEN_EVENT_STATUSES),
                    ScheduledEvent.step_number.is_not(None),
                    ScheduledEvent.start_time <= now,
                )
                .order_by(ScheduledEvent.start_time.asc(), ScheduledEvent.event_id.asc())
            )
        ).all()
        for event_id, candidate_id, step_number, meta in rows:
            if (meta or {}).get(AUTO_COMPLETE_ERROR_KEY):
                continue
            candidate = await session.get(Candidate, candidate_id)
            if candidate is None:
                continue
            try:
                await complete_step(session, candidate, step_number, company=company, actor_email=None)
                await session.commit()
                completed += 1
            except StepCompletionError as exc:
                await session.rollback()
                logger.warning(
                    "auto_complete_failed",
                    extra={"event_id": event_id, "candidate_id": candidate_id, "error": str(exc)},
                )
                # Park the event so the next run does not retry it.
                event = await session.get(ScheduledEvent, event_id)
                if event is not None:
                    event.meta_json = {**(event.meta_json or {}), AUTO_COMPLETE_ERROR_KEY: str(exc)}
                    await session.commit()
    return completed


async def run_task_snooze_wakeups(session_factory=SessionLocal) -> int:
    """Return snoozed tasks to PENDING once their snooze has passed."""
    async with session_factory() as session:
        result = await session.execute(
            update(Task)
            .where(Task.status == TASK_STATUS_SNOOZED, Task.snoozed_until <= now_local_naive())
            .values(status=TASK_STATUS_PENDING, snoozed_until=None)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        return int(result.rowcount or 0)
