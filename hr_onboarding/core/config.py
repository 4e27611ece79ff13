from __future__ import annotations

import os
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hr_onboarding.core.paths import resolve_repo_path


def _env_files() -> list[str]:
    env = os.getenv("ONB_ENVIRONMENT", "").strip().lower()
    files = [str(resolve_repo_path(".env"))]
    if env and env != "development":
        files.append(str(resolve_repo_path(f".env.{env}")))
    else:
        files.append(str(resolve_repo_path(".env.local")))
    return files


class Settings(BaseSettings):
    app_name: str = "HR Onboarding"
    environment: str = "development"

    database_url: str

    auth_mode: Literal["dev", "google"] = "dev"
    google_client_id: str = ""
    google_workspace_domain: str = ""
    google_application_credentials: str = Field(
        default="secrets/google-service-account.json",
        validation_alias=AliasChoices(
            "ONB_GOOGLE_APPLICATION_CREDENTIALS",
            "GOOGLE_APPLICATION_CREDENTIALS",
        ),
    )
    google_oauth_secrets_path: str = "secrets/google-oauth-client.json"
    google_clock_skew_seconds: int = 180

    enable_gmail: bool = False
    enable_calendar: bool = False
    gmail_sender_email: str = ""
    gmail_sender_name: str = "HR Team"
    calendar_id: str = "primary"
    calendar_timezone: str = "Asia/Kolkata"

    uploads_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    company_name: str = "Company"
    hr_name: str = "HR Team"
    hr_email: str = ""
    frontend_url: str = "http://localhost:3000"
    onboarding_form_url: str = ""

    duplicate_email_window_minutes: int = 5
    enable_scheduler: bool = True
    redis_url: str = ""
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(env_prefix="ONB_", env_file=_env_files(), extra="ignore")

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
