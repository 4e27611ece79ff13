from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_onboarding.constants import EVENT_STATUS_SCHEDULED, EVENT_STATUS_VALUES, EVENT_TYPE_VALUES
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base


class ScheduledEvent(Base):
    __tablename__ = "onb_scheduled_event"

    event_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey("onb_candidate.candidate_id"), nullable=False, index=True)
    step_number: Mapped[int | None] = mapped_column(Integer, index=True)
    event_type: Mapped[str] = mapped_column(Enum(*EVENT_TYPE_VALUES, name="onb_event_type_enum"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(*EVENT_STATUS_VALUES, name="onb_event_status_enum"),
        default=EVENT_STATUS_SCHEDULED,
        index=True,
    )

    meeting_link: Mapped[str | None] = mapped_column(String(512))
    google_event_id: Mapped[str | None] = mapped_column(String(128))
    attendees: Mapped[list | None] = mapped_column(JSON)
    attachment_paths: Mapped[list | None] = mapped_column(JSON)
    meta_json: Mapped[dict | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive)

    candidate: Mapped["Candidate"] = relationship("Candidate", back_populates="events")
