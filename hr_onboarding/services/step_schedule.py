"""Due-date resolution for department onboarding steps.

Everything here is pure: callers snapshot the step template and the candidate's
anchor dates into plain values first, so the same rules serve the batch
scheduler, the preview endpoint and the per-candidate workflow view.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Literal, Optional

from hr_onboarding.constants import (
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
    EVENT_TYPE_CUSTOM,
    EVENT_TYPE_WHATSAPP_TASK,
    SCHEDULING_MANUAL,
    SCHEDULING_OFFER_LETTER,
    STEP_CEO_INDUCTION,
    STEP_CHECKIN_CALL,
    STEP_DEPARTMENT_INDUCTION,
    STEP_FORM_REMINDER,
    STEP_HR_INDUCTION,
    STEP_MANUAL,
    STEP_OFFER_LETTER,
    STEP_OFFER_REMINDER,
    STEP_ONBOARDING_FORM,
    STEP_SALES_INDUCTION,
    STEP_TRAINING_PLAN,
    STEP_WELCOME_EMAIL,
    STEP_WHATSAPP_ADDITION,
)
from hr_onboarding.core.datetime_utils import parse_time_of_day

RESOLVED_SCHEDULED = "scheduled"
RESOLVED_MANUAL = "manual"
RESOLVED_UNRESOLVED = "unresolved"

ANCHOR_OFFER_EVENT = "offer_letter_event"
ANCHOR_OFFER_SENT = "offer_sent_at"
ANCHOR_JOINING_DATE = "expected_joining_date"

REASON_OFFER_NOT_SENT = "offer_letter_not_sent"
REASON_JOINING_DATE_UNKNOWN = "joining_date_unknown"

FALLBACK_TIME = time(9, 0)
DEFAULT_STEP_TIMES: dict[str, time] = {
    STEP_OFFER_REMINDER: time(14, 0),
}

FALLBACK_DURATION_MINUTES = 15
DEFAULT_STEP_DURATIONS: dict[str, int] = {
    STEP_OFFER_LETTER: 30,
    STEP_OFFER_REMINDER: 15,
    STEP_WELCOME_EMAIL: 30,
    STEP_HR_INDUCTION: 60,
    STEP_WHATSAPP_ADDITION: 15,
    STEP_ONBOARDING_FORM: 30,
    STEP_FORM_REMINDER: 15,
    STEP_CEO_INDUCTION: 60,
    STEP_SALES_INDUCTION: 90,
    STEP_DEPARTMENT_INDUCTION: 90,
    STEP_TRAINING_PLAN: 30,
    STEP_CHECKIN_CALL: 30,
}

_EVENT_TYPE_OVERRIDES: dict[str, str] = {
    STEP_MANUAL: EVENT_TYPE_CUSTOM,
    STEP_WHATSAPP_ADDITION: EVENT_TYPE_WHATSAPP_TASK,
}


@dataclass(frozen=True)
class StepRule:
    step_type: str
    scheduling_method: str
    due_date_offset: int = 0
    scheduled_time: Optional[str] = None
    duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class OfferEventRef:
    start_time: datetime
    status: str
    created_at: datetime


@dataclass(frozen=True)
class CandidateAnchors:
    expected_joining_date: Optional[date] = None
    offer_sent_at: Optional[datetime] = None
    offer_events: tuple[OfferEventRef, ...] = ()


@dataclass(frozen=True)
class ResolvedSchedule:
    status: Literal["scheduled", "manual", "unresolved"]
    at: Optional[datetime] = None
    anchor_source: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_scheduled(self) -> bool:
        return self.status == RESOLVED_SCHEDULED


def default_time_for(step_type: str) -> time:
    return DEFAULT_STEP_TIMES.get(step_type, FALLBACK_TIME)


def default_duration_for(step_type: str) -> int:
    return DEFAULT_STEP_DURATIONS.get(step_type, FALLBACK_DURATION_MINUTES)


def step_duration(rule: StepRule) -> int:
    if rule.duration_minutes and rule.duration_minutes > 0:
        return rule.duration_minutes
    return default_duration_for(rule.step_type)


def event_type_for_step(step_type: str) -> str:
    return _EVENT_TYPE_OVERRIDES.get(step_type, step_type)


def uses_offer_anchor(rule: StepRule) -> bool:
    return rule.step_type == STEP_OFFER_REMINDER or rule.scheduling_method == SCHEDULING_OFFER_LETTER


def pick_offer_letter_event(events: Iterable[OfferEventRef]) -> OfferEventRef | None:
    """Most recently created offer-letter event that is neither completed nor cancelled."""
    candidates = [e for e in events if e.status not in (EVENT_STATUS_COMPLETED, EVENT_STATUS_CANCELLED)]
    if not candidates:
        return None
    return max(candidates, key=lambda e: (e.created_at, e.start_time))


def _offer_anchor(anchors: CandidateAnchors) -> tuple[date | None, str | None]:
    event = pick_offer_letter_event(anchors.offer_events)
    if event is not None:
        return event.start_time.date(), ANCHOR_OFFER_EVENT
    if anchors.offer_sent_at is not None:
        return anchors.offer_sent_at.date(), ANCHOR_OFFER_SENT
    return None, None


def resolve_step_schedule(rule: StepRule, anchors: CandidateAnchors) -> ResolvedSchedule:
    if rule.scheduling_method == SCHEDULING_MANUAL:
        return ResolvedSchedule(status=RESOLVED_MANUAL)

    if uses_offer_anchor(rule):
        anchor_day, source = _offer_anchor(anchors)
        if anchor_day is None:
            return ResolvedSchedule(status=RESOLVED_UNRESOLVED, reason=REASON_OFFER_NOT_SENT)
    else:
        anchor_day, source = anchors.expected_joining_date, ANCHOR_JOINING_DATE
        if anchor_day is None:
            return ResolvedSchedule(status=RESOLVED_UNRESOLVED, reason=REASON_JOINING_DATE_UNKNOWN)

    time_of_day = parse_time_of_day(rule.scheduled_time) or default_time_for(rule.step_type)
    day = anchor_day + timedelta(days=int(rule.due_date_offset or 0))
    return ResolvedSchedule(
        status=RESOLVED_SCHEDULED,
        at=datetime.combine(day, time_of_day),
        anchor_source=source,
    )


def event_window(rule: StepRule, start_at: datetime, duration_minutes: int | None = None) -> tuple[datetime, datetime]:
    minutes = duration_minutes if duration_minutes and duration_minutes > 0 else step_duration(rule)
    return start_at, start_at + timedelta(minutes=minutes)
