from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_onboarding.constants import PRIORITY_MEDIUM, PRIORITY_VALUES, TASK_STATUS_PENDING, TASK_STATUS_VALUES
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base


class Task(Base):
    __tablename__ = "onb_task"

    task_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey("onb_candidate.candidate_id"), nullable=False, index=True)
    task_type: Mapped[str] = mapped_column(String(100), default="CUSTOM")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        Enum(*TASK_STATUS_VALUES, name="onb_task_status_enum"),
        default=TASK_STATUS_PENDING,
        index=True,
    )
    priority: Mapped[str] = mapped_column(Enum(*PRIORITY_VALUES, name="onb_priority_enum"), default=PRIORITY_MEDIUM)
    assigned_to_email: Mapped[str | None] = mapped_column(String(255))
    snoozed_until: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive)
