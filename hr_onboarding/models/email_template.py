from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_onboarding.constants import EMAIL_TYPE_VALUES
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base


class EmailTemplate(Base):
    __tablename__ = "onb_email_template"

    template_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(Enum(*EMAIL_TYPE_VALUES, name="onb_email_type_enum"), nullable=False, index=True)
    custom_email_type: Mapped[str | None] = mapped_column(String(100))
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    placeholders: Mapped[list | None] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive)
