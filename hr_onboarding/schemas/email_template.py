from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from hr_onboarding.constants import EMAIL_TYPE_CUSTOM, EMAIL_TYPE_VALUES
from hr_onboarding.schemas.common import reject_explicit_nulls


class EmailTemplateOut(BaseModel):
    template_id: int
    name: str
    type: str
    custom_email_type: Optional[str] = None
    subject: str
    body: str
    placeholders: Optional[List[str]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EmailTemplateCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    type: str
    custom_email_type: Optional[str] = None
    subject: str = Field(min_length=1, max_length=500)
    body: str = Field(min_length=1)
    placeholders: Optional[List[str]] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _custom_type_rules(self):
        if self.type not in EMAIL_TYPE_VALUES:
            raise ValueError("invalid_email_type")
        custom = (self.custom_email_type or "").strip()
        if self.type == EMAIL_TYPE_CUSTOM and not custom:
            raise ValueError("custom_email_type_required")
        self.custom_email_type = custom if self.type == EMAIL_TYPE_CUSTOM else None
        return self


class EmailTemplateUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    type: Optional[str] = None
    custom_email_type: Optional[str] = None
    subject: Optional[str] = Field(default=None, min_length=1, max_length=500)
    body: Optional[str] = Field(default=None, min_length=1)
    placeholders: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _valid_update(self):
        reject_explicit_nulls(self, ("name", "type", "subject", "body", "is_active"))
        if self.type is not None and self.type not in EMAIL_TYPE_VALUES:
            raise ValueError("invalid_email_type")
        return self


class TemplatePreviewIn(BaseModel):
    candidate_id: Optional[int] = None
    overrides: Dict[str, Any] = Field(default_factory=dict)


class TemplatePreviewOut(BaseModel):
    subject: str
    body: str
    unresolved_placeholders: List[str] = []


class PlaceholderCatalogOut(BaseModel):
    candidate: List[str]
    company: List[str]
    custom: List[str]
