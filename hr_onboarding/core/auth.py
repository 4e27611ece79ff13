from __future__ import annotations

import json
from typing import Any, Iterable

import urllib3
from fastapi import Depends, HTTPException, Request, status
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.urllib3 import Request as GoogleAuthRequest
from google.oauth2 import id_token as google_id_token
from sqlalchemy.exc import SQLAlchemyError

from hr_onboarding.core.config import settings
from hr_onboarding.core.paths import resolve_repo_path
from hr_onboarding.core.roles import Role, has_required_role
from hr_onboarding.db.session import SessionLocal
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.user_service import resolve_hr_user_by_email

DEV_DEFAULT_EMAIL = "hr.admin@example.com"


def _auth_error(code: int, detail: str) -> HTTPException:
    return HTTPException(status_code=code, detail=detail)


def parse_roles(raw: str | None) -> list[Role]:
    """Comma separated role names; unknown names are ignored, nothing known means viewer."""
    known = {role.value for role in Role}
    roles = [Role(part) for part in (p.strip().lower() for p in (raw or "").split(",")) if part in known]
    return roles or [Role.VIEWER]


def display_name_for(email: str) -> str:
    local = email.partition("@")[0]
    words = [w for w in local.replace("_", ".").replace("-", ".").split(".") if w]
    return " ".join(w.capitalize() for w in words) or email


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _oauth_client_id() -> str | None:
    if settings.google_client_id:
        return settings.google_client_id
    secrets_file = resolve_repo_path(settings.google_oauth_secrets_path)
    if not secrets_file.exists():
        return None
    data = json.loads(secrets_file.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return None
    for section in (data.get("web"), data.get("installed")):
        if isinstance(section, dict) and section.get("client_id"):
            return section["client_id"]
    return None


def _verify_id_token(token: str) -> dict[str, Any]:
    client_id = _oauth_client_id()
    if not client_id:
        raise _auth_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "oauth_client_id_missing")
    try:
        return google_id_token.verify_oauth2_token(
            token,
            GoogleAuthRequest(urllib3.PoolManager()),
            audience=client_id,
            clock_skew_in_seconds=int(settings.google_clock_skew_seconds),
        )
    except (ValueError, GoogleAuthError) as exc:
        detail = "invalid_google_token"
        if settings.environment != "production":
            detail = f"invalid_google_token: {exc}"
        raise _auth_error(status.HTTP_401_UNAUTHORIZED, detail) from exc


async def _hr_user_context(claims: dict[str, Any]) -> UserContext:
    email = str(claims.get("email") or "").strip().lower()
    if not email:
        raise _auth_error(status.HTTP_401_UNAUTHORIZED, "token_email_missing")
    if settings.google_workspace_domain and claims.get("hd") != settings.google_workspace_domain:
        raise _auth_error(status.HTTP_403_FORBIDDEN, "workspace_domain_not_allowed")

    try:
        async with SessionLocal() as session:
            hr_user = await resolve_hr_user_by_email(session, email)
    except SQLAlchemyError as exc:
        raise _auth_error(status.HTTP_503_SERVICE_UNAVAILABLE, "user_lookup_failed") from exc
    if hr_user is None:
        raise _auth_error(status.HTTP_403_FORBIDDEN, "user_not_registered")
    if not hr_user.is_active:
        raise _auth_error(status.HTTP_403_FORBIDDEN, "user_inactive")

    return UserContext(
        user_id=email,
        email=email,
        roles=parse_roles(hr_user.role),
        full_name=hr_user.full_name or claims.get("name") or display_name_for(email),
        hr_user_id=hr_user.user_id,
    )


def _dev_user_context(request: Request) -> UserContext:
    # Local console: X-User-Email / X-User-Name / X-User-Roles (e.g. "hr_admin,hr_exec").
    email = (request.headers.get("x-user-email") or DEV_DEFAULT_EMAIL).strip().lower()
    return UserContext(
        user_id=email,
        email=email,
        roles=parse_roles(request.headers.get("x-user-roles") or Role.HR_ADMIN.value),
        full_name=request.headers.get("x-user-name") or display_name_for(email),
    )


async def get_current_user(request: Request) -> UserContext:
    # A bearer token is honoured in every mode.
    token = _bearer_token(request)
    if token:
        return await _hr_user_context(_verify_id_token(token))
    if settings.auth_mode == "google":
        raise _auth_error(status.HTTP_401_UNAUTHORIZED, "bearer_token_required")
    return _dev_user_context(request)


def require_roles(required: Iterable[Role]):
    required = tuple(required)

    async def dependency(user: UserContext = Depends(get_current_user)) -> UserContext:
        if not has_required_role(user.roles, required):
            raise _auth_error(status.HTTP_403_FORBIDDEN, "insufficient_role")
        return user

    return dependency
