from __future__ import annotations

from datetime import date, datetime, time
import unittest

from hr_onboarding.services.step_schedule import (
    ANCHOR_JOINING_DATE,
    ANCHOR_OFFER_EVENT,
    ANCHOR_OFFER_SENT,
    REASON_JOINING_DATE_UNKNOWN,
    REASON_OFFER_NOT_SENT,
    CandidateAnchors,
    OfferEventRef,
    StepRule,
    default_duration_for,
    default_time_for,
    event_type_for_step,
    event_window,
    pick_offer_letter_event,
    resolve_step_schedule,
)


class JoiningDateResolutionTests(unittest.TestCase):
    def test_offset_and_explicit_time_from_joining_date(self) -> None:
        anchors = CandidateAnchors(expected_joining_date=date(2024, 6, 10))
        expected = {
            -30: datetime(2024, 5, 11, 14, 30),
            -1: datetime(2024, 6, 9, 14, 30),
            0: datetime(2024, 6, 10, 14, 30),
            1: datetime(2024, 6, 11, 14, 30),
            30: datetime(2024, 7, 10, 14, 30),
        }
        for offset, at in expected.items():
            rule = StepRule(step_type="WELCOME_EMAIL", scheduling_method="doj", due_date_offset=offset, scheduled_time="14:30")
            resolved = resolve_step_schedule(rule, anchors)
            self.assertTrue(resolved.is_scheduled)
            self.assertEqual(resolved.at, at)
            self.assertEqual(resolved.anchor_source, ANCHOR_JOINING_DATE)

    def test_hr_induction_two_days_before_joining(self) -> None:
        rule = StepRule(step_type="HR_INDUCTION", scheduling_method="doj", due_date_offset=-2, scheduled_time="10:00")
        resolved = resolve_step_schedule(rule, CandidateAnchors(expected_joining_date=date(2024, 6, 10)))
        self.assertEqual(resolved.at, datetime(2024, 6, 8, 10, 0))

    def test_missing_joining_date_is_unresolved(self) -> None:
        rule = StepRule(step_type="WELCOME_EMAIL", scheduling_method="doj", due_date_offset=-1)
        resolved = resolve_step_schedule(rule, CandidateAnchors())
        self.assertFalse(resolved.is_scheduled)
        self.assertIsNone(resolved.at)
        self.assertEqual(resolved.reason, REASON_JOINING_DATE_UNKNOWN)

    def test_manual_method_never_computes_a_time(self) -> None:
        rule = StepRule(step_type="CEO_INDUCTION", scheduling_method="manual", due_date_offset=2)
        resolved = resolve_step_schedule(rule, CandidateAnchors(expected_joining_date=date(2024, 6, 10)))
        self.assertEqual(resolved.status, "manual")
        self.assertIsNone(resolved.at)


class OfferAnchorResolutionTests(unittest.TestCase):
    def test_reminder_defaults_to_two_pm(self) -> None:
        self.assertEqual(default_time_for("OFFER_REMINDER"), time(14, 0))
        self.assertEqual(default_time_for("WELCOME_EMAIL"), time(9, 0))
        rule = StepRule(step_type="OFFER_REMINDER", scheduling_method="offer_letter", due_date_offset=3)
        anchors = CandidateAnchors(offer_sent_at=datetime(2024, 5, 1, 17, 45))
        resolved = resolve_step_schedule(rule, anchors)
        self.assertEqual(resolved.at, datetime(2024, 5, 4, 14, 0))
        self.assertEqual(resolved.anchor_source, ANCHOR_OFFER_SENT)

    def test_reminder_ignores_joining_date(self) -> None:
        rule = StepRule(step_type="OFFER_REMINDER", scheduling_method="doj", due_date_offset=3)
        resolved = resolve_step_schedule(rule, CandidateAnchors(expected_joining_date=date(2024, 6, 10)))
        self.assertFalse(resolved.is_scheduled)
        self.assertEqual(resolved.reason, REASON_OFFER_NOT_SENT)

    def test_latest_open_offer_event_wins_over_sent_timestamp(self) -> None:
        events = (
            OfferEventRef(start_time=datetime(2024, 5, 2, 9, 0), status="SCHEDULED", created_at=datetime(2024, 4, 30, 8, 0)),
            OfferEventRef(start_time=datetime(2024, 5, 5, 9, 0), status="RESCHEDULED", created_at=datetime(2024, 5, 1, 8, 0)),
            OfferEventRef(start_time=datetime(2024, 5, 9, 9, 0), status="CANCELLED", created_at=datetime(2024, 5, 3, 8, 0)),
        )
        anchors = CandidateAnchors(offer_sent_at=datetime(2024, 4, 1, 10, 0), offer_events=events)
        rule = StepRule(step_type="OFFER_REMINDER", scheduling_method="offer_letter", due_date_offset=3, scheduled_time="11:00")
        resolved = resolve_step_schedule(rule, anchors)
        self.assertEqual(resolved.at, datetime(2024, 5, 8, 11, 0))
        self.assertEqual(resolved.anchor_source, ANCHOR_OFFER_EVENT)

    def test_pick_offer_event_breaks_created_at_ties_by_start(self) -> None:
        created = datetime(2024, 5, 1, 8, 0)
        early = OfferEventRef(start_time=datetime(2024, 5, 2, 9, 0), status="SCHEDULED", created_at=created)
        late = OfferEventRef(start_time=datetime(2024, 5, 6, 9, 0), status="SCHEDULED", created_at=created)
        self.assertIs(pick_offer_letter_event([early, late]), late)
        self.assertIsNone(pick_offer_letter_event([]))


class EventShapeTests(unittest.TestCase):
    def test_event_type_mapping(self) -> None:
        self.assertEqual(event_type_for_step("MANUAL"), "CUSTOM")
        self.assertEqual(event_type_for_step("WHATSAPP_ADDITION"), "WHATSAPP_TASK")
        self.assertEqual(event_type_for_step("HR_INDUCTION"), "HR_INDUCTION")

    def test_window_uses_step_duration_then_type_default(self) -> None:
        start = datetime(2024, 6, 10, 9, 30)
        with_duration = StepRule(step_type="HR_INDUCTION", scheduling_method="doj", duration_minutes=45)
        self.assertEqual(event_window(with_duration, start)[1], datetime(2024, 6, 10, 10, 15))
        typed = StepRule(step_type="SALES_INDUCTION", scheduling_method="doj")
        self.assertEqual(event_window(typed, start)[1], datetime(2024, 6, 10, 11, 0))
        self.assertEqual(event_window(typed, start, 20)[1], datetime(2024, 6, 10, 9, 50))

    def test_unlisted_step_types_default_to_fifteen_minutes(self) -> None:
        self.assertEqual(default_duration_for("MANUAL"), 15)
        self.assertEqual(default_duration_for("CHECKIN_CALL"), 30)


if __name__ == "__main__":
    unittest.main()
