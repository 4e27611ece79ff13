from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.db.base import Base


class AppSetting(Base):
    __tablename__ = "onb_app_setting"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(String(255))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive)


class CustomPlaceholder(Base):
    __tablename__ = "onb_custom_placeholder"

    placeholder_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    placeholder_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[int] = mapped_column(Integer, default=1)
