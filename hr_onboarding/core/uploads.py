from __future__ import annotations

import re
from pathlib import PurePosixPath
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status

from hr_onboarding.core.config import settings
from hr_onboarding.core.paths import resolve_repo_path

MAX_FILENAME_LENGTH = 150
OCTET_STREAM_MIME_TYPES = {"application/octet-stream", "binary/octet-stream"}

ATTACHMENT_EXTENSIONS = {
    ".csv",
    ".doc",
    ".docx",
    ".jpeg",
    ".jpg",
    ".pdf",
    ".png",
    ".ppt",
    ".pptx",
    ".rtf",
    ".txt",
    ".xls",
    ".xlsx",
}
ATTACHMENT_MIME_TYPES = {
    "application/x-pdf",
    "application/msword",
    "application/pdf",
    "application/rtf",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
    "application/vnd.ms-word",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpg",
    "image/jpeg",
    "image/pjpeg",
    "image/png",
    "text/csv",
    "text/rtf",
    "text/plain",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def attachment_filename(raw: str | None) -> str:
    """Storage-safe version of a client filename, keeping its extension."""
    base = PurePosixPath((raw or "").replace("\\", "/")).name
    stem, suffix = PurePosixPath(base).stem, PurePosixPath(base).suffix.lower()
    stem = _UNSAFE_CHARS.sub("_", stem).strip("._") or "attachment"
    suffix = _UNSAFE_CHARS.sub("", suffix)
    return stem[: MAX_FILENAME_LENGTH - len(suffix)] + suffix


def _media_type(upload: UploadFile) -> str:
    return (upload.content_type or "").partition(";")[0].strip().lower()


def check_attachment(upload: UploadFile) -> str:
    filename = attachment_filename(upload.filename)
    suffix = PurePosixPath(filename).suffix
    if suffix and suffix not in ATTACHMENT_EXTENSIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="unsupported_file_type")
    media_type = _media_type(upload)
    if media_type and media_type not in ATTACHMENT_MIME_TYPES | OCTET_STREAM_MIME_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="unsupported_file_content_type")
    return filename


async def save_attachments(uploads: list[UploadFile], *, folder: str) -> list[str]:
    """Check and store uploads under the uploads dir; returns paths relative to it.

    Every upload is checked before anything is written, so a rejected batch leaves no files behind.
    """
    accepted: list[tuple[str, bytes]] = []
    for upload in uploads:
        if not upload or not upload.filename:
            continue
        filename = check_attachment(upload)
        data = await upload.read()
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="attachment_too_large")
        accepted.append((f"{uuid4().hex[:12]}_{filename}", data))
    if not accepted:
        return []

    target_dir = resolve_repo_path(settings.uploads_dir) / folder
    target_dir.mkdir(parents=True, exist_ok=True)
    for stored, data in accepted:
        (target_dir / stored).write_bytes(data)
    return [f"{folder}/{stored}" for stored, _ in accepted]
