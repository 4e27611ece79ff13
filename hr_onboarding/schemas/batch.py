from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class BatchScheduleIn(BaseModel):
    candidate_ids: List[int] = Field(min_length=1)
    step_number: Optional[int] = None
    step_type: Optional[str] = None
    department: Optional[str] = None
    mode: Literal["exact", "computed"] = "computed"
    date_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)

    @model_validator(mode="after")
    def _check(self):
        if self.step_number is None and not self.step_type:
            raise ValueError("step_number_or_step_type_required")
        if self.mode == "exact" and self.date_time is None:
            raise ValueError("date_time_required_for_exact_mode")
        return self


class BatchItemResult(BaseModel):
    candidate_id: int
    success: bool
    event_id: Optional[int] = None
    email_id: Optional[int] = None
    email_status: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    error: Optional[str] = None


class BatchScheduleOut(BaseModel):
    step_number: int
    step_type: str
    total: int
    succeeded: int
    failed: int
    results: List[BatchItemResult]


class BatchPreviewItem(BaseModel):
    candidate_id: int
    candidate_name: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    anchor_source: Optional[str] = None
    error: Optional[str] = None


class BatchPreviewOut(BaseModel):
    step_number: int
    step_type: str
    mode: str
    items: List[BatchPreviewItem]
