from __future__ import annotations

import base64
import logging
import mimetypes
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any

from fastapi.concurrency import run_in_threadpool
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.constants import EMAIL_STATUS_FAILED, EMAIL_STATUS_SENT, EMAIL_STATUS_SKIPPED
from hr_onboarding.core.config import settings
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.core.paths import resolve_repo_path
from hr_onboarding.models.email import Email

logger = logging.getLogger("onb.email")


def _gmail_client():
    scopes = ["https://www.googleapis.com/auth/gmail.send"]
    service_account_path = settings.google_application_credentials
    if not service_account_path:
        raise RuntimeError("Missing service account credentials for Gmail.")
    if not settings.gmail_sender_email:
        raise RuntimeError("Missing ONB_GMAIL_SENDER_EMAIL for Gmail delegation.")
    credentials = Credentials.from_service_account_file(str(resolve_repo_path(service_account_path)), scopes=scopes)
    credentials = credentials.with_subject(settings.gmail_sender_email)
    return build("gmail", "v1", credentials=credentials, cache_discovery=False)


def resolve_attachment_path(raw: str) -> Path:
    path = Path(raw)
    if path.is_absolute():
        return path
    return resolve_repo_path(settings.uploads_dir) / path


def build_message(
    *,
    to_email: str,
    subject: str,
    body_html: str,
    attachment_paths: list[str] | None = None,
) -> str:
    sender = settings.gmail_sender_email
    sender_name = settings.gmail_sender_name or settings.hr_name
    msg = MIMEMultipart()
    msg["To"] = to_email
    msg["From"] = f"{sender_name} <{sender}>"
    msg["Reply-To"] = settings.hr_email or sender
    msg["Subject"] = subject
    msg.attach(MIMEText(body_html, "html", "utf-8"))

    for raw_path in attachment_paths or []:
        path = resolve_attachment_path(raw_path)
        content_type, _ = mimetypes.guess_type(path.name)
        maintype, _, subtype = (content_type or "application/octet-stream").partition("/")
        part = MIMEApplication(path.read_bytes(), _subtype=subtype if maintype == "application" else "octet-stream")
        part.add_header("Content-Disposition", "attachment", filename=path.name)
        msg.attach(part)

    return base64.urlsafe_b64encode(msg.as_bytes()).decode("utf-8")


def send_gmail_message(raw: str) -> dict[str, Any]:
    service = _gmail_client()
    response = service.users().messages().send(userId=settings.gmail_sender_email, body={"raw": raw}).execute()
    return {"status": "sent", "message_id": response.get("id")}


async def send_candidate_email(
    session: AsyncSession,
    *,
    candidate_id: int,
    to_email: str | None,
    email_type: str,
    subject: str,
    body: str,
    template_id: int | None = None,
    event_id: int | None = None,
    attachment_paths: list[str] | None = None,
) -> Email:
    """Send one candidate email and record it in onb_email.

    The returned row is SENT, SKIPPED (Gmail disabled) or FAILED (no recipient or
    provider error). Provider errors are recorded, never raised.
    """
    email = Email(
        candidate_id=candidate_id,
        template_id=template_id,
        event_id=event_id,
        email_type=email_type,
        to_email=to_email,
        subject=subject,
        body=body,
        attachment_paths=list(attachment_paths or []) or None,
    )
    session.add(email)

    if not to_email:
        email.status = EMAIL_STATUS_FAILED
        email.error = "missing_recipient"
    elif not settings.enable_gmail:
        email.status = EMAIL_STATUS_SKIPPED
    else:
        try:
            raw = build_message(to_email=to_email, subject=subject, body_html=body, attachment_paths=attachment_paths)
            result = await run_in_threadpool(send_gmail_message, raw)
            email.status = EMAIL_STATUS_SENT
            email.tracking_id = result.get("message_id")
            email.sent_at = now_local_naive()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "email_send_failed",
                extra={"candidate_id": candidate_id, "email_type": email_type, "error": str(exc)},
            )
            email.status = EMAIL_STATUS_FAILED
            email.error = str(exc)[:2000]

    await session.flush()
    return email
