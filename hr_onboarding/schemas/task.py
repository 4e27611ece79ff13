from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hr_onboarding.constants import PRIORITY_VALUES, TASK_STATUS_VALUES


class TaskOut(BaseModel):
    task_id: int
    candidate_id: int
    task_type: str
    title: str
    description: Optional[str] = None
    due_date: datetime
    status: str
    priority: str
    assigned_to_email: Optional[str] = None
    snoozed_until: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskCreateIn(BaseModel):
    candidate_id: int
    task_type: str = "CUSTOM"
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: datetime
    priority: str = "MEDIUM"
    assigned_to_email: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def _priority(cls, value: str) -> str:
        if value not in PRIORITY_VALUES:
            raise ValueError("invalid_priority")
        return value


class TaskUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assigned_to_email: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def _priority(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in PRIORITY_VALUES:
            raise ValueError("invalid_priority")
        return value

    @field_validator("status")
    @classmethod
    def _status(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in TASK_STATUS_VALUES:
            raise ValueError("invalid_task_status")
        return value


class TaskSnoozeIn(BaseModel):
    until: datetime
