from __future__ import annotations

from datetime import date, datetime

import pytest
from sqlalchemy import select

from hr_onboarding.core.config import settings
from hr_onboarding.models.email import Email
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.services import batch_schedule as batch_module
from hr_onboarding.services import email as email_service
from hr_onboarding.services.batch_schedule import BatchRequest, BatchScheduleError, batch_schedule, preview_batch
from hr_onboarding.services.company_settings import CompanySettings

COMPANY = CompanySettings(company_name="Acme", hr_name="Priya", hr_email="hr@acme.example.com")


@pytest.fixture()
async def induction_step(make_template, make_step):
    template = await make_template("HR_INDUCTION", subject="Induction for {{firstName}}", body="See you at {{scheduledTime}}")
    return await make_step(template, step_number=3, step_type="HR_INDUCTION", due_date_offset=-2, scheduled_time="10:00")


async def test_batch_reports_per_candidate_outcome(db_session, induction_step, make_candidate):
    first = await make_candidate("Asha", email="asha@example.com")
    no_email = await make_candidate("Bala", email=None)
    third = await make_candidate("Chitra", email="chitra@example.com")
    await db_session.commit()

    snapshot, results = await batch_schedule(
        db_session,
        BatchRequest(candidate_ids=[first.candidate_id, no_email.candidate_id, third.candidate_id], step_number=3),
        company=COMPANY,
        actor_email="hr@acme.example.com",
    )

    assert snapshot.step_type == "HR_INDUCTION"
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error == "missing_email"
    assert results[0].scheduled_for == datetime(2024, 6, 8, 10, 0)
    assert results[0].email_status == "SKIPPED"

    events = (await db_session.execute(select(ScheduledEvent))).scalars().all()
    assert sorted(e.candidate_id for e in events) == [first.candidate_id, third.candidate_id]
    assert all(e.step_number == 3 and e.status == "SCHEDULED" for e in events)
    assert len({e.event_id for e in events}) == 2

    emails = (await db_session.execute(select(Email).order_by(Email.email_id))).scalars().all()
    assert [e.subject for e in emails] == ["Induction for Asha", "Induction for Chitra"]
    assert emails[0].body == "See you at 10:00 AM"


async def test_batch_item_errors_do_not_stop_the_batch(db_session, induction_step, make_candidate):
    unknown_doj = await make_candidate("Asha", joining=None)
    other_dept = await make_candidate("Bala", email="bala@example.com", department="Sales")
    ok = await make_candidate("Chitra", email="chitra@example.com")
    await db_session.commit()

    _, results = await batch_schedule(
        db_session,
        BatchRequest(
            candidate_ids=[unknown_doj.candidate_id, other_dept.candidate_id, 424242, ok.candidate_id],
            step_number=3,
            department="Engineering",
        ),
        company=COMPANY,
    )
    assert [r.error for r in results] == [
        "anchor_unknown:joining_date_unknown",
        "department_mismatch",
        "candidate_not_found",
        None,
    ]


async def test_exact_mode_uses_the_given_time(db_session, induction_step, make_candidate):
    candidate = await make_candidate(joining=None)
    await db_session.commit()

    _, results = await batch_schedule(
        db_session,
        BatchRequest(
            candidate_ids=[candidate.candidate_id],
            step_type="HR_INDUCTION",
            mode="exact",
            date_time=datetime(2024, 7, 1, 15, 0),
            duration_minutes=20,
        ),
        company=COMPANY,
    )
    assert results[0].success
    event = await db_session.get(ScheduledEvent, results[0].event_id)
    assert (event.start_time, event.end_time) == (datetime(2024, 7, 1, 15, 0), datetime(2024, 7, 1, 15, 20))


async def test_step_selection_errors(db_session, make_template, make_step, make_candidate):
    template = await make_template("CUSTOM")
    await make_step(template, step_number=1, step_type="MANUAL", scheduling_method="manual")
    candidate = await make_candidate()

    with pytest.raises(BatchScheduleError, match="no_candidates_selected"):
        await batch_schedule(db_session, BatchRequest(candidate_ids=[], step_number=1), company=COMPANY)
    with pytest.raises(BatchScheduleError, match="step_not_found"):
        await preview_batch(db_session, BatchRequest(candidate_ids=[candidate.candidate_id], step_number=7))
    with pytest.raises(BatchScheduleError, match="manual_step_requires_exact_time"):
        await preview_batch(db_session, BatchRequest(candidate_ids=[candidate.candidate_id], step_number=1))


async def test_preview_computes_without_writing(db_session, induction_step, make_candidate):
    candidate = await make_candidate(joining=date(2024, 6, 10))
    _, items = await preview_batch(db_session, BatchRequest(candidate_ids=[candidate.candidate_id], step_number=3))
    assert items[0].scheduled_for == datetime(2024, 6, 8, 10, 0)
    assert items[0].anchor_source == "expected_joining_date"
    assert (await db_session.execute(select(ScheduledEvent))).scalars().first() is None


async def test_provider_failure_cancels_only_that_candidates_event(db_session, induction_step, make_candidate, monkeypatch):
    first = await make_candidate("Asha", email="asha@example.com")
    second = await make_candidate("Chitra", email="chitra@example.com")
    await db_session.commit()

    outcomes = [RuntimeError("quota exceeded"), {"status": "sent", "message_id": "m-2"}]

    def fake_send(raw):
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(settings, "enable_gmail", True)
    monkeypatch.setattr(email_service, "send_gmail_message", fake_send)

    _, results = await batch_schedule(
        db_session,
        BatchRequest(candidate_ids=[first.candidate_id, second.candidate_id], step_number=3),
        company=COMPANY,
    )

    assert [r.success for r in results] == [False, True]
    assert results[0].error == "email_failed:quota exceeded"
    assert results[1].email_status == "SENT"

    failed_event = await db_session.get(ScheduledEvent, results[0].event_id)
    assert failed_event.status == "CANCELLED"
    assert failed_event.meta_json["cancel_reason"] == "email_failed"
    assert (await db_session.get(ScheduledEvent, results[1].event_id)).status == "SCHEDULED"

    emails = (await db_session.execute(select(Email).order_by(Email.email_id))).scalars().all()
    assert [(e.candidate_id, e.status) for e in emails] == [
        (first.candidate_id, "FAILED"),
        (second.candidate_id, "SENT"),
    ]
    assert emails[1].tracking_id == "m-2"


async def test_sent_email_survives_a_later_failure_in_the_item(db_session, induction_step, make_candidate, monkeypatch):
    candidate = await make_candidate()
    await db_session.commit()
    candidate_id = candidate.candidate_id

    async def broken_log_activity(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    monkeypatch.setattr(batch_module, "log_activity", broken_log_activity)

    _, results = await batch_schedule(
        db_session,
        BatchRequest(candidate_ids=[candidate_id], step_number=3),
        company=COMPANY,
    )

    assert results[0].success is False
    assert results[0].error == "unexpected_error:RuntimeError"
    emails = (await db_session.execute(select(Email))).scalars().all()
    assert [(e.candidate_id, e.email_type) for e in emails] == [(candidate_id, "HR_INDUCTION")]
    event = (await db_session.execute(select(ScheduledEvent))).scalars().one()
    assert event.event_id == emails[0].event_id
