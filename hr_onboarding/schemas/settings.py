from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CompanySettingsOut(BaseModel):
    company_name: str
    hr_name: str
    hr_email: str
    hr_phone: str = ""
    company_address: str = ""
    office_timings: str = ""
    onboarding_form_url: str = ""
    primary_color: str = ""
    secondary_color: str = ""


class CompanySettingsUpdateIn(BaseModel):
    company_name: Optional[str] = None
    hr_name: Optional[str] = None
    hr_email: Optional[str] = None
    hr_phone: Optional[str] = None
    company_address: Optional[str] = None
    office_timings: Optional[str] = None
    onboarding_form_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None


class CustomPlaceholderOut(BaseModel):
    placeholder_id: int
    placeholder_key: str
    value: str
    description: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class CustomPlaceholderIn(BaseModel):
    placeholder_key: str = Field(min_length=1, max_length=100)
    value: str = ""
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("placeholder_key")
    @classmethod
    def _placeholder_key(cls, value: str) -> str:
        key = value.strip().strip("{}").strip()
        if not key or not key[0].isalpha() or not key.replace("_", "").isalnum():
            raise ValueError("invalid_placeholder_key")
        return key


class HrUserOut(BaseModel):
    user_id: int
    email: str
    full_name: Optional[str] = None
    role: str
    is_active: bool

    class Config:
        from_attributes = True


class HrUserCreateIn(BaseModel):
    email: str
    full_name: Optional[str] = None
    role: str = "hr_exec"


class HrUserUpdateIn(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
