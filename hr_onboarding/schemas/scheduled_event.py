from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from hr_onboarding.constants import EVENT_TYPE_VALUES


class ScheduledEventOut(BaseModel):
    event_id: int
    candidate_id: int
    step_number: Optional[int] = None
    event_type: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    meeting_link: Optional[str] = None
    google_event_id: Optional[str] = None
    attendees: Optional[List[str]] = None
    attachment_paths: Optional[List[str]] = None
    meta_json: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ScheduledEventCreateIn(BaseModel):
    candidate_id: int
    event_type: str
    title: Optional[str] = None
    description: Optional[str] = None
    step_number: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    attendees: Optional[List[str]] = None
    attachment_paths: Optional[List[str]] = None
    create_meet_link: bool = True

    @model_validator(mode="after")
    def _check(self):
        if self.event_type not in EVENT_TYPE_VALUES:
            raise ValueError("invalid_event_type")
        if self.start_time is None and self.step_number is None:
            raise ValueError("start_time_or_step_number_required")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time_before_start_time")
        return self


class ScheduledEventUpdateIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    attendees: Optional[List[str]] = None
    attachment_paths: Optional[List[str]] = None
    meeting_link: Optional[str] = None


class RescheduleIn(BaseModel):
    start_time: datetime
    end_time: Optional[datetime] = None
    reason: Optional[str] = None


class CancelEventIn(BaseModel):
    reason: Optional[str] = None


class EventStatsOut(BaseModel):
    total: int
    scheduled: int
    completed: int
    cancelled: int
    rescheduled: int
    today: int
    upcoming_week: int
