from __future__ import annotations

from datetime import datetime, time, timedelta

import pytest
from sqlalchemy import func, select

from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.jobs.tasks import run_due_step_completions
from hr_onboarding.models.email import Email
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.services.batch_schedule import BatchRequest, batch_schedule
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.step_completion import StepCompletionError, complete_step, unschedule_step

COMPANY = CompanySettings(company_name="Acme", hr_name="Priya", hr_email="hr@acme.example.com")


async def _email_count(session) -> int:
    return int((await session.execute(select(func.count(Email.email_id)))).scalar() or 0)


@pytest.fixture()
async def offer_steps(make_template, make_step):
    offer = await make_template("OFFER_LETTER", subject="Your offer, {{firstName}}")
    reminder = await make_template("OFFER_REMINDER")
    induction = await make_template("HR_INDUCTION")
    return [
        await make_step(offer, step_number=1, step_type="OFFER_LETTER"),
        await make_step(reminder, step_number=2, step_type="OFFER_REMINDER", is_auto=True, scheduling_method="offer_letter", due_date_offset=3),
        await make_step(induction, step_number=3, step_type="HR_INDUCTION", is_auto=True, scheduled_time="09:30"),
    ]


async def test_completing_unscheduled_step_records_a_completed_event(db_session, offer_steps, make_candidate):
    candidate = await make_candidate()
    result = await complete_step(db_session, candidate, 3, company=COMPANY, actor_email="hr@acme.example.com")

    assert result.status == "completed"
    event = await db_session.get(ScheduledEvent, result.event_id)
    assert event.status == "COMPLETED"
    assert event.meta_json == {"source": "completion"}
    email = await db_session.get(Email, result.email_id)
    assert (email.status, email.event_id) == ("SKIPPED", event.event_id)


async def test_batch_notification_is_not_sent_twice(db_session, offer_steps, make_candidate):
    candidate = await make_candidate()
    await db_session.commit()
    _, results = await batch_schedule(db_session, BatchRequest(candidate_ids=[candidate.candidate_id], step_number=3), company=COMPANY)
    assert await _email_count(db_session) == 1

    result = await complete_step(db_session, candidate, 3, company=COMPANY)
    assert result.detail == "email_already_sent"
    assert result.event_id == results[0].event_id
    assert await _email_count(db_session) == 1
    event = await db_session.get(ScheduledEvent, results[0].event_id)
    await db_session.refresh(event)
    assert event.status == "COMPLETED"


async def test_offer_letter_needs_an_attachment(db_session, offer_steps, make_candidate):
    candidate = await make_candidate()
    with pytest.raises(StepCompletionError, match="offer_letter_attachment_required"):
        await complete_step(db_session, candidate, 1, company=COMPANY)


async def test_offer_letter_completion_sends_offer_and_schedules_reminder(db_session, offer_steps, make_candidate):
    candidate = await make_candidate(offer_letter_path="offers/asha.pdf")
    result = await complete_step(db_session, candidate, 1, company=COMPANY)

    assert candidate.status == "OFFER_SENT"
    assert candidate.offer_sent_at is not None
    assert len(result.auto_scheduled_event_ids) == 1
    reminder = await db_session.get(ScheduledEvent, result.auto_scheduled_event_ids[0])
    assert reminder.step_number == 2
    assert reminder.start_time == datetime.combine(candidate.offer_sent_at.date() + timedelta(days=3), time(14, 0))
    email = await db_session.get(Email, result.email_id)
    assert email.attachment_paths == ["offers/asha.pdf"]


async def test_reminder_is_skipped_once_offer_is_signed(db_session, offer_steps, make_candidate):
    candidate = await make_candidate(offer_signed_at=datetime(2024, 5, 3, 12, 0))
    result = await complete_step(db_session, candidate, 2, company=COMPANY)
    assert (result.status, result.detail) == ("skipped", "offer_already_signed")
    assert await _email_count(db_session) == 0


async def test_completion_errors(db_session, offer_steps, make_candidate):
    no_email = await make_candidate(email=None)
    with pytest.raises(StepCompletionError, match="candidate_email_missing"):
        await complete_step(db_session, no_email, 3, company=COMPANY)
    with pytest.raises(StepCompletionError, match="step_not_found"):
        await complete_step(db_session, no_email, 9, company=COMPANY)


async def test_unschedule_cancels_the_open_event(db_session, offer_steps, make_candidate):
    candidate = await make_candidate()
    await db_session.commit()
    _, results = await batch_schedule(db_session, BatchRequest(candidate_ids=[candidate.candidate_id], step_number=3), company=COMPANY)

    result = await unschedule_step(db_session, candidate, 3)
    assert (result.status, result.event_id) == ("unscheduled", results[0].event_id)
    event = await db_session.get(ScheduledEvent, results[0].event_id)
    assert event.status == "CANCELLED"
    with pytest.raises(StepCompletionError, match="scheduled_event_not_found"):
        await unschedule_step(db_session, candidate, 3)


async def test_due_job_completes_passed_step_events(db_session, session_factory, offer_steps, make_candidate):
    candidate = await make_candidate()
    start = now_local_naive() - timedelta(hours=1)
    db_session.add(
        ScheduledEvent(
            candidate_id=candidate.candidate_id,
            step_number=3,
            event_type="HR_INDUCTION",
            title="HR Induction",
            start_time=start,
            end_time=start + timedelta(hours=1),
            status="SCHEDULED",
        )
    )
    db_session.add(
        ScheduledEvent(
            candidate_id=candidate.candidate_id,
            step_number=3,
            event_type="HR_INDUCTION",
            title="Future HR Induction",
            start_time=start + timedelta(days=2),
            end_time=start + timedelta(days=2, hours=1),
            status="SCHEDULED",
        )
    )
    await db_session.commit()

    assert await run_due_step_completions(session_factory) == 1
    async with session_factory() as check:
        statuses = (await check.execute(select(ScheduledEvent.status))).scalars().all()
    assert statuses == ["COMPLETED", "COMPLETED"]
