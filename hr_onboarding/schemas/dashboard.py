from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class StatusCount(BaseModel):
    status: str
    count: int


class DepartmentCount(BaseModel):
    department: str
    count: int


class DashboardOverviewOut(BaseModel):
    total_candidates: int
    active_candidates: int
    joining_this_week: int
    offers_pending_signature: int
    events_today: int
    tasks_pending: int
    tasks_overdue: int
    emails_failed_last_7_days: int


class ActivityOut(BaseModel):
    activity_id: int
    candidate_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    description: Optional[str] = None
    meta_json: Optional[dict] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UpcomingJoiningOut(BaseModel):
    candidate_id: int
    full_name: str
    department: str
    position: Optional[str] = None
    expected_joining_date: date
