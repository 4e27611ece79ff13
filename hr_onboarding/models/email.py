from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_onboarding.constants import EMAIL_STATUS_PENDING, EMAIL_STATUS_VALUES
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base


class Email(Base):
    __tablename__ = "onb_email"

    email_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey("onb_candidate.candidate_id"), nullable=False, index=True)
    template_id: Mapped[int | None] = mapped_column(ForeignKey("onb_email_template.template_id"))
    event_id: Mapped[int | None] = mapped_column(ForeignKey("onb_scheduled_event.event_id"))
    email_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    to_email: Mapped[str | None] = mapped_column(String(255))
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_paths: Mapped[list | None] = mapped_column(JSON)

    status: Mapped[str] = mapped_column(
        Enum(*EMAIL_STATUS_VALUES, name="onb_email_status_enum"),
        default=EMAIL_STATUS_PENDING,
        index=True,
    )
    tracking_id: Mapped[str | None] = mapped_column(String(128))
    error: Mapped[str | None] = mapped_column(Text)
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, index=True)
