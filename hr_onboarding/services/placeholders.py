from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.models.setting import CustomPlaceholder
from hr_onboarding.services.company_settings import CompanySettings

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_.]+)\s*\}\}")

CANDIDATE_PLACEHOLDER_KEYS = (
    "firstName",
    "lastName",
    "fullName",
    "candidateName",
    "email",
    "position",
    "department",
    "salary",
    "joiningDate",
    "reportingManager",
)
COMPANY_PLACEHOLDER_KEYS = ("hrName", "hrEmail", "companyName", "formLink")

SAMPLE_CANDIDATE_VALUES = {
    "firstName": "John",
    "lastName": "Doe",
    "fullName": "John Doe",
    "candidateName": "John Doe",
    "email": "john.doe@example.com",
    "position": "Software Engineer",
    "department": "Engineering",
    "salary": "10,00,000",
    "joiningDate": "01 Jan 2025",
    "reportingManager": "Jane Smith",
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    body: str


def normalize_token(key: str) -> str:
    """Accept ``key`` or ``{{key}}`` and return the ``{{key}}`` token."""
    cleaned = key.strip()
    match = PLACEHOLDER_RE.fullmatch(cleaned)
    if match:
        return "{{" + match.group(1) + "}}"
    return "{{" + cleaned + "}}"


def build_token_map(*layers: Mapping[str, Any] | None) -> dict[str, str]:
    """Merge placeholder layers into a token map; later layers win."""
    tokens: dict[str, str] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if not key or not str(key).strip():
                continue
            tokens[normalize_token(str(key))] = "" if value is None else str(value)
    return tokens


def render_text(text: str | None, tokens: Mapping[str, str]) -> str:
    if not text:
        return ""
    # Longest token first; ties ordered by text so output never depends on map order.
    for token in sorted(tokens, key=lambda t: (-len(t), t)):
        text = text.replace(token, tokens[token])
    return text


def render_email(subject: str | None, body: str | None, tokens: Mapping[str, str]) -> RenderedEmail:
    return RenderedEmail(subject=render_text(subject, tokens), body=render_text(body, tokens))


def extract_placeholders(*texts: str | None) -> list[str]:
    found: list[str] = []
    for text in texts:
        for match in PLACEHOLDER_RE.finditer(text or ""):
            key = match.group(1)
            if key not in found:
                found.append(key)
    return found


def format_joining_date(value) -> str:
    if value is None:
        return ""
    return value.strftime("%d %b %Y")


def candidate_values(candidate) -> dict[str, Any]:
    full_name = " ".join(part for part in [candidate.first_name, candidate.last_name] if part)
    return {
        "firstName": candidate.first_name,
        "lastName": candidate.last_name,
        "fullName": full_name,
        "candidateName": full_name,
        "email": candidate.email,
        "position": candidate.position,
        "department": candidate.department,
        "salary": candidate.salary,
        "joiningDate": format_joining_date(candidate.expected_joining_date),
        "reportingManager": candidate.reporting_manager,
    }


def company_values(company: CompanySettings) -> dict[str, Any]:
    return {
        "hrName": company.hr_name,
        "hrEmail": company.hr_email,
        "companyName": company.company_name,
        "formLink": company.onboarding_form_url,
    }


async def load_custom_placeholders(session: AsyncSession) -> dict[str, str]:
    rows = (
        await session.execute(select(CustomPlaceholder).where(CustomPlaceholder.is_active == 1))
    ).scalars().all()
    return {row.placeholder_key: row.value for row in rows}


async def placeholder_tokens(
    session: AsyncSession,
    *,
    company: CompanySettings,
    candidate=None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    base = candidate_values(candidate) if candidate is not None else SAMPLE_CANDIDATE_VALUES
    custom = await load_custom_placeholders(session)
    return build_token_map(base, company_values(company), custom, overrides)
