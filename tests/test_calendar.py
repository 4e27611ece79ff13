from datetime import datetime

import pytest

from hr_onboarding.core.config import settings
from hr_onboarding.models.scheduled_event import ScheduledEvent
from hr_onboarding.services import calendar


class _Call:
    def __init__(self, result):
        self._result = result

    def execute(self):
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class FakeEventsApi:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def insert(self, **kwargs):
        self.calls.append(("insert", kwargs))
        return _Call(self.result)

    def patch(self, **kwargs):
        self.calls.append(("patch", kwargs))
        return _Call(self.result)

    def delete(self, **kwargs):
        self.calls.append(("delete", kwargs))
        return _Call(self.result)


def _event(**extra) -> ScheduledEvent:
    return ScheduledEvent(
        candidate_id=1,
        step_number=3,
        event_type="HR_INDUCTION",
        title="HR Induction - Asha Rao",
        start_time=datetime(2024, 6, 8, 10, 0),
        end_time=datetime(2024, 6, 8, 11, 0),
        status="SCHEDULED",
        attendees=["asha@example.com", None],
        **extra,
    )


@pytest.fixture()
def fake_api(monkeypatch):
    monkeypatch.setattr(settings, "enable_calendar", True)
    api = FakeEventsApi({"id": "g-1", "conferenceData": {"entryPoints": [{"entryPointType": "video", "uri": "https://meet.example.com/x"}]}})
    monkeypatch.setattr(calendar, "_events_api", lambda: api)
    return api


def test_event_resource_sends_naive_local_time_with_zone():
    resource = calendar.event_resource(_event())
    assert resource["start"] == {"dateTime": "2024-06-08T10:00:00", "timeZone": settings.calendar_timezone}
    assert resource["attendees"] == [{"email": "asha@example.com"}]


async def test_publish_stores_provider_id_and_meet_link(fake_api):
    event = _event()
    await calendar.publish_event(event)
    assert (event.google_event_id, event.meeting_link) == ("g-1", "https://meet.example.com/x")
    kind, kwargs = fake_api.calls[0]
    assert kind == "insert" and kwargs["conferenceDataVersion"] == 1
    assert "conferenceData" in kwargs["body"]


async def test_provider_failure_keeps_local_event(fake_api):
    fake_api.result = RuntimeError("quota exceeded")
    event = _event()
    await calendar.publish_event(event, with_meet=False)
    assert event.google_event_id is None
    await calendar.withdraw_event(event)
    assert [kind for kind, _ in fake_api.calls] == ["insert"]


async def test_sync_and_withdraw_need_a_provider_id(fake_api):
    event = _event(google_event_id="g-7")
    await calendar.sync_event(event)
    await calendar.withdraw_event(event)
    assert [(kind, kwargs["eventId"]) for kind, kwargs in fake_api.calls] == [("patch", "g-7"), ("delete", "g-7")]


async def test_disabled_calendar_sends_nothing(fake_api, monkeypatch):
    monkeypatch.setattr(settings, "enable_calendar", False)
    event = _event()
    await calendar.publish_event(event)
    assert fake_api.calls == [] and event.google_event_id is None
