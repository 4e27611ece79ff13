from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from hr_onboarding.constants import PRIORITY_VALUES, SCHEDULING_METHOD_VALUES, STEP_TYPE_VALUES
from hr_onboarding.core.datetime_utils import parse_time_of_day
from hr_onboarding.schemas.common import reject_explicit_nulls


def _check_choice(value: Optional[str], allowed: tuple[str, ...], code: str) -> Optional[str]:
    if value is None:
        return value
    if value not in allowed:
        raise ValueError(code)
    return value


def _check_time(value: Optional[str]) -> Optional[str]:
    parsed = parse_time_of_day(value)
    return parsed.strftime("%H:%M") if parsed else None


class DepartmentStepOut(BaseModel):
    step_id: int
    department: str
    step_number: int
    step_type: str
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    is_auto: bool
    scheduling_method: str
    due_date_offset: int
    scheduled_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    priority: str
    email_template_id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DepartmentStepCreateIn(BaseModel):
    department: str = Field(min_length=1, max_length=100)
    step_number: Optional[int] = Field(default=None, ge=1)
    step_type: str
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_auto: bool = False
    scheduling_method: str = "doj"
    due_date_offset: int = 0
    scheduled_time: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    priority: str = "MEDIUM"
    email_template_id: int
    is_active: bool = True

    @field_validator("step_type")
    @classmethod
    def _known_step_type(cls, value: Optional[str]) -> Optional[str]:
        return _check_choice(value, STEP_TYPE_VALUES, "invalid_step_type")

    @field_validator("scheduling_method")
    @classmethod
    def _known_scheduling_method(cls, value: Optional[str]) -> Optional[str]:
        return _check_choice(value, SCHEDULING_METHOD_VALUES, "invalid_scheduling_method")

    @field_validator("priority")
    @classmethod
    def _known_priority(cls, value: Optional[str]) -> Optional[str]:
        return _check_choice(value, PRIORITY_VALUES, "invalid_priority")

    @field_validator("scheduled_time")
    @classmethod
    def _time_of_day(cls, value: Optional[str]) -> Optional[str]:
        return _check_time(value)


class DepartmentStepUpdateIn(BaseModel):
    step_number: Optional[int] = Field(default=None, ge=1)
    step_type: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_auto: Optional[bool] = None
    scheduling_method: Optional[str] = None
    due_date_offset: Optional[int] = None
    scheduled_time: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    priority: Optional[str] = None
    email_template_id: Optional[int] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _required_columns_not_null(self):
        return reject_explicit_nulls(
            self,
            ("step_type", "title", "is_auto", "scheduling_method", "due_date_offset", "priority", "email_template_id", "is_active"),
        )

    @field_validator("step_type")
    @classmethod
    def _known_step_type(cls, value: Optional[str]) -> Optional[str]:
        return _check_choice(value, STEP_TYPE_VALUES, "invalid_step_type")

    @field_validator("scheduling_method")
    @classmethod
    def _known_scheduling_method(cls, value: Optional[str]) -> Optional[str]:
        return _check_choice(value, SCHEDULING_METHOD_VALUES, "invalid_scheduling_method")

    @field_validator("priority")
    @classmethod
    def _known_priority(cls, value: Optional[str]) -> Optional[str]:
        return _check_choice(value, PRIORITY_VALUES, "invalid_priority")

    @field_validator("scheduled_time")
    @classmethod
    def _time_of_day(cls, value: Optional[str]) -> Optional[str]:
        return _check_time(value)


class StepReorderIn(BaseModel):
    step_id_a: int
    step_id_b: int


class StepMoveIn(BaseModel):
    direction: Literal["up", "down"]
