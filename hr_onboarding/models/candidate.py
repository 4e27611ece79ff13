from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_onboarding.constants import CANDIDATE_STATUS_OFFER_PENDING, CANDIDATE_STATUS_VALUES
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base


class Candidate(Base):
    __tablename__ = "onb_candidate"

    candidate_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100))
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(50))

    department: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    position: Mapped[str | None] = mapped_column(String(150))
    salary: Mapped[str | None] = mapped_column(String(100))
    reporting_manager: Mapped[str | None] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(Text)

    expected_joining_date: Mapped[date | None] = mapped_column(Date)
    actual_joining_date: Mapped[date | None] = mapped_column(Date)
    offer_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    offer_signed_at: Mapped[datetime | None] = mapped_column(DateTime)
    offer_letter_path: Mapped[str | None] = mapped_column(String(500))
    signed_offer_path: Mapped[str | None] = mapped_column(String(500))
    onboarding_form_completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    status: Mapped[str] = mapped_column(
        Enum(*CANDIDATE_STATUS_VALUES, name="onb_candidate_status_enum"),
        default=CANDIDATE_STATUS_OFFER_PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive)

    events: Mapped[list["ScheduledEvent"]] = relationship("ScheduledEvent", back_populates="candidate")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in [self.first_name, self.last_name] if part)
