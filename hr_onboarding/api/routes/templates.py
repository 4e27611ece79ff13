from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.api import deps
from hr_onboarding.constants import EMAIL_TYPE_CUSTOM, EMAIL_TYPE_VALUES
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.roles import ADMIN_ROLES, ALL_ROLES
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.department_step import DepartmentStepTemplate
from hr_onboarding.models.email_template import EmailTemplate
from hr_onboarding.request_context import get_request_context
from hr_onboarding.schemas.email_template import (
    EmailTemplateCreateIn,
    EmailTemplateOut,
    EmailTemplateUpdateIn,
    PlaceholderCatalogOut,
    TemplatePreviewIn,
    TemplatePreviewOut,
)
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.placeholders import (
    CANDIDATE_PLACEHOLDER_KEYS,
    COMPANY_PLACEHOLDER_KEYS,
    extract_placeholders,
    load_custom_placeholders,
    placeholder_tokens,
    render_email,
)

router = APIRouter(prefix="/templates", tags=["templates"])


async def _get_template(session: AsyncSession, template_id: int) -> EmailTemplate:
    template = await session.get(EmailTemplate, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="template_not_found")
    return template


async def _ensure_unique_name(session: AsyncSession, name: str, *, exclude_id: int | None = None) -> None:
    stmt = select(EmailTemplate.template_id).where(EmailTemplate.name == name)
    if exclude_id is not None:
        stmt = stmt.where(EmailTemplate.template_id != exclude_id)
    if (await session.execute(stmt.limit(1))).scalar() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="template_name_taken")


async def _active_step_ids_using(session: AsyncSession, template_id: int) -> list[int]:
    rows = await session.execute(
        select(DepartmentStepTemplate.step_id).where(
            DepartmentStepTemplate.email_template_id == template_id,
            DepartmentStepTemplate.is_active.is_(True),
        )
    )
    return list(rows.scalars().all())


@router.get("", response_model=list[EmailTemplateOut])
async def list_templates(
    type: str | None = None,
    active_only: bool = False,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    stmt = select(EmailTemplate)
    if type:
        stmt = stmt.where(EmailTemplate.type == type)
    if active_only:
        stmt = stmt.where(EmailTemplate.is_active.is_(True))
    rows = await session.execute(stmt.order_by(EmailTemplate.type.asc(), EmailTemplate.name.asc()))
    return rows.scalars().all()


@router.get("/meta/types", response_model=list[str])
async def list_template_types(_user: UserContext = Depends(require_roles(ALL_ROLES))):
    return list(EMAIL_TYPE_VALUES)


@router.get("/meta/placeholders", response_model=PlaceholderCatalogOut)
async def list_placeholders(
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    custom = await load_custom_placeholders(session)
    return PlaceholderCatalogOut(
        candidate=list(CANDIDATE_PLACEHOLDER_KEYS),
        company=list(COMPANY_PLACEHOLDER_KEYS),
        custom=sorted(custom),
    )


@router.get("/{template_id}", response_model=EmailTemplateOut)
async def get_template(
    template_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    return await _get_template(session, template_id)


@router.post("", response_model=EmailTemplateOut, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: EmailTemplateCreateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    await _ensure_unique_name(session, payload.name)
    data = payload.model_dump()
    if not data.get("placeholders"):
        data["placeholders"] = extract_placeholders(payload.subject, payload.body)
    template = EmailTemplate(**data)
    session.add(template)
    await session.flush()
    await log_activity(
        session,
        action="TEMPLATE_CREATED",
        description=f"Email template {template.name} created",
        actor_email=user.email,
        meta_json={"template_id": template.template_id},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(template)
    return template


@router.put("/{template_id}", response_model=EmailTemplateOut)
async def update_template(
    template_id: int,
    payload: EmailTemplateUpdateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    template = await _get_template(session, template_id)
    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] != template.name:
        await _ensure_unique_name(session, data["name"], exclude_id=template_id)
    if data.get("is_active") is False and template.is_active and await _active_step_ids_using(session, template_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="template_in_use_by_active_step")

    new_type = data.get("type", template.type)
    custom = (data.get("custom_email_type", template.custom_email_type) or "").strip()
    if new_type == EMAIL_TYPE_CUSTOM and not custom:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="custom_email_type_required")
    data["custom_email_type"] = custom if new_type == EMAIL_TYPE_CUSTOM else None

    for key, value in data.items():
        setattr(template, key, value)
    if "subject" in data or "body" in data:
        if "placeholders" not in data:
            template.placeholders = extract_placeholders(template.subject, template.body)
    await log_activity(
        session,
        action="TEMPLATE_UPDATED",
        description=f"Email template {template.name} updated",
        actor_email=user.email,
        meta_json={"template_id": template.template_id, "fields": sorted(data)},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(template)
    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(ADMIN_ROLES)),
):
    template = await _get_template(session, template_id)
    step_ids = await _active_step_ids_using(session, template_id)
    if step_ids:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "template_in_use_by_active_step", "step_ids": step_ids},
        )
    # Inactive steps may still point at it; keep the row so their FK stays valid.
    referenced = (
        await session.execute(
            select(DepartmentStepTemplate.step_id).where(DepartmentStepTemplate.email_template_id == template_id).limit(1)
        )
    ).scalar()
    if referenced is not None:
        template.is_active = False
    else:
        await session.delete(template)
    await log_activity(
        session,
        action="TEMPLATE_DELETED",
        description=f"Email template {template.name} deleted",
        actor_email=user.email,
        meta_json={"template_id": template_id, "soft": referenced is not None},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/preview", response_model=TemplatePreviewOut)
async def preview_template(
    template_id: int,
    payload: TemplatePreviewIn,
    session: AsyncSession = Depends(deps.get_db_session),
    company: CompanySettings = Depends(deps.get_company),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    template = await _get_template(session, template_id)
    candidate = None
    if payload.candidate_id is not None:
        candidate = await session.get(Candidate, payload.candidate_id)
        if not candidate:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="candidate_not_found")
    tokens = await placeholder_tokens(session, company=company, candidate=candidate, overrides=payload.overrides)
    rendered = render_email(template.subject, template.body, tokens)
    return TemplatePreviewOut(
        subject=rendered.subject,
        body=rendered.body,
        unresolved_placeholders=extract_placeholders(rendered.subject, rendered.body),
    )
