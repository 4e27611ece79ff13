from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_onboarding.constants import (
    PRIORITY_MEDIUM,
    PRIORITY_VALUES,
    SCHEDULING_DOJ,
    SCHEDULING_METHOD_VALUES,
    STEP_TYPE_VALUES,
)
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base
from hr_onboarding.models.email_template import EmailTemplate


class DepartmentStepTemplate(Base):
    __tablename__ = "onb_department_step"
    __table_args__ = (UniqueConstraint("department", "step_number", name="uq_onb_department_step_number"),)

    step_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)

    step_type: Mapped[str] = mapped_column(Enum(*STEP_TYPE_VALUES, name="onb_step_type_enum"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str | None] = mapped_column(String(16))

    is_auto: Mapped[bool] = mapped_column(Boolean, default=False)
    scheduling_method: Mapped[str] = mapped_column(
        Enum(*SCHEDULING_METHOD_VALUES, name="onb_scheduling_method_enum"),
        default=SCHEDULING_DOJ,
        nullable=False,
    )
    due_date_offset: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    scheduled_time: Mapped[str | None] = mapped_column(String(5))
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    priority: Mapped[str] = mapped_column(Enum(*PRIORITY_VALUES, name="onb_priority_enum"), default=PRIORITY_MEDIUM)

    email_template_id: Mapped[int] = mapped_column(ForeignKey("onb_email_template.template_id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive)

    email_template: Mapped[EmailTemplate] = relationship("EmailTemplate", lazy="joined")
