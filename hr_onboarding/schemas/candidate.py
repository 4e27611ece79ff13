from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from hr_onboarding.constants import CANDIDATE_STATUS_VALUES
from hr_onboarding.schemas.common import reject_explicit_nulls


class CandidateCreateIn(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department: str = Field(min_length=1, max_length=100)
    position: Optional[str] = None
    salary: Optional[str] = None
    reporting_manager: Optional[str] = None
    expected_joining_date: Optional[date] = None
    notes: Optional[str] = None


class CandidateUpdateIn(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department: Optional[str] = Field(default=None, min_length=1, max_length=100)
    position: Optional[str] = None
    salary: Optional[str] = None
    reporting_manager: Optional[str] = None
    expected_joining_date: Optional[date] = None
    actual_joining_date: Optional[date] = None
    notes: Optional[str] = None
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CANDIDATE_STATUS_VALUES:
            raise ValueError("invalid_candidate_status")
        return value

    @model_validator(mode="after")
    def _required_columns_not_null(self):
        return reject_explicit_nulls(self, ("first_name", "department", "status"))


class CandidateListItem(BaseModel):
    candidate_id: int
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    department: str
    position: Optional[str] = None
    status: str
    expected_joining_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CandidateOut(CandidateListItem):
    phone: Optional[str] = None
    salary: Optional[str] = None
    reporting_manager: Optional[str] = None
    notes: Optional[str] = None
    actual_joining_date: Optional[date] = None
    offer_sent_at: Optional[datetime] = None
    offer_signed_at: Optional[datetime] = None
    offer_letter_path: Optional[str] = None
    onboarding_form_completed_at: Optional[datetime] = None
    updated_at: datetime


class CandidateListOut(BaseModel):
    items: List[CandidateListItem]
    total: int
    page: int
    limit: int


class WorkflowStepOut(BaseModel):
    step_id: int
    step_number: int
    step_type: str
    title: str
    is_auto: bool
    scheduling_method: str
    state: str
    event_id: Optional[int] = None
    scheduled_for: Optional[datetime] = None
    email_sent: bool
    resolution: str
    resolved_for: Optional[datetime] = None
    unresolved_reason: Optional[str] = None


class CompleteStepIn(BaseModel):
    attachment_paths: Optional[List[str]] = None
    overrides: Optional[dict] = None


class StepActionOut(BaseModel):
    candidate_id: int
    step_number: int
    status: str
    event_id: Optional[int] = None
    email_id: Optional[int] = None
    detail: Optional[str] = None
    auto_scheduled_event_ids: List[int] = []
