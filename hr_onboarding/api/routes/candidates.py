from __future__ import annotations

import json
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.api import deps
from hr_onboarding.constants import CANDIDATE_STATUS_OFFER_SIGNED, CANDIDATE_STATUS_WITHDRAWN
from hr_onboarding.core.auth import require_roles
from hr_onboarding.core.datetime_utils import now_local_naive
from hr_onboarding.core.roles import ALL_ROLES, EDITOR_ROLES
from hr_onboarding.core.uploads import save_attachments
from hr_onboarding.models.activity import ActivityLog
from hr_onboarding.models.candidate import Candidate
from hr_onboarding.models.email import Email
from hr_onboarding.request_context import get_request_context
from hr_onboarding.schemas.batch import BatchPreviewOut, BatchScheduleIn, BatchScheduleOut
from hr_onboarding.schemas.candidate import (
    CandidateCreateIn,
    CandidateListOut,
    CandidateOut,
    CandidateUpdateIn,
    CompleteStepIn,
    StepActionOut,
    WorkflowStepOut,
)
from hr_onboarding.schemas.dashboard import ActivityOut
from hr_onboarding.schemas.user import UserContext
from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.batch_schedule import (
    BatchRequest,
    BatchScheduleError,
    batch_schedule,
    preview_batch,
    resolve_batch_step,
)
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.step_completion import StepCompletionError, complete_step, unschedule_step
from hr_onboarding.services.workflow import build_workflow

router = APIRouter(prefix="/candidates", tags=["candidates"])
logger = logging.getLogger("onb.candidates")

_NOT_FOUND_CODES = {"step_not_found", "scheduled_event_not_found", "candidate_not_found", "no_candidates_found"}


def _step_error(exc: ValueError) -> HTTPException:
    code = str(exc)
    if code in _NOT_FOUND_CODES:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=code)
    if code == "email_send_failed":
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=code)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=code)


async def _get_candidate(session: AsyncSession, candidate_id: int) -> Candidate:
    candidate = await session.get(Candidate, candidate_id)
    if not candidate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="candidate_not_found")
    return candidate


def _parse_candidate_ids(raw: str) -> list[int]:
    text = (raw or "").strip()
    try:
        values = json.loads(text) if text.startswith("[") else [part for part in text.split(",") if part.strip()]
        return [int(value) for value in values]
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="invalid_candidate_ids") from exc


def _batch_request(payload: BatchScheduleIn, attachment_paths: list[str] | None = None) -> BatchRequest:
    return BatchRequest(
        candidate_ids=list(dict.fromkeys(payload.candidate_ids)),
        step_number=payload.step_number,
        step_type=payload.step_type,
        department=payload.department,
        mode=payload.mode,
        date_time=payload.date_time,
        duration_minutes=payload.duration_minutes,
        attachment_paths=tuple(attachment_paths or ()),
    )


@router.get("", response_model=CandidateListOut)
async def list_candidates(
    search: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    department: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    filters = []
    if search:
        like = f"%{search.strip()}%"
        filters.append(
            or_(
                Candidate.first_name.like(like),
                Candidate.last_name.like(like),
                Candidate.email.like(like),
                Candidate.position.like(like),
            )
        )
    if status_filter:
        filters.append(Candidate.status == status_filter)
    if department:
        filters.append(Candidate.department == department)

    total = (await session.execute(select(func.count(Candidate.candidate_id)).where(*filters))).scalar() or 0
    rows = await session.execute(
        select(Candidate)
        .where(*filters)
        .order_by(Candidate.created_at.desc(), Candidate.candidate_id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return CandidateListOut(items=rows.scalars().all(), total=int(total), page=page, limit=limit)


@router.post("/batch/preview", response_model=BatchPreviewOut)
async def preview_batch_schedule(
    payload: BatchScheduleIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    try:
        snapshot, items = await preview_batch(session, _batch_request(payload))
    except BatchScheduleError as exc:
        raise _step_error(exc) from exc
    return BatchPreviewOut(step_number=snapshot.step_number, step_type=snapshot.step_type, mode=payload.mode, items=items)


@router.post("/batch/schedule", response_model=BatchScheduleOut)
async def batch_schedule_step(
    request: Request,
    candidate_ids: str = Form(...),
    step_number: int | None = Form(default=None),
    step_type: str | None = Form(default=None),
    department: str | None = Form(default=None),
    mode: str = Form(default="computed"),
    date_time: datetime | None = Form(default=None),
    duration_minutes: int | None = Form(default=None),
    attachments: list[UploadFile] | None = File(default=None),
    session: AsyncSession = Depends(deps.get_db_session),
    company: CompanySettings = Depends(deps.get_company),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    try:
        payload = BatchScheduleIn(
            candidate_ids=_parse_candidate_ids(candidate_ids),
            step_number=step_number,
            step_type=step_type or None,
            department=department or None,
            mode=mode,
            date_time=date_time,
            duration_minutes=duration_minutes,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=json.loads(exc.json(include_url=False)),
        ) from exc

    # Reject a bad step selection before any file lands on disk.
    try:
        snapshot = await resolve_batch_step(session, _batch_request(payload))
    except BatchScheduleError as exc:
        raise _step_error(exc) from exc

    saved = await save_attachments(list(attachments or []), folder=f"batch/{snapshot.department}-{snapshot.step_number}")
    ctx = get_request_context(request)
    try:
        snapshot, results = await batch_schedule(
            session,
            _batch_request(payload, saved),
            company=company,
            actor_email=user.email,
            request_id=ctx.request_id,
        )
    except BatchScheduleError as exc:
        raise _step_error(exc) from exc

    succeeded = sum(1 for r in results if r.success)
    return BatchScheduleOut(
        step_number=snapshot.step_number,
        step_type=snapshot.step_type,
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=results,
    )


@router.get("/{candidate_id}", response_model=CandidateOut)
async def get_candidate(
    candidate_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    return await _get_candidate(session, candidate_id)


@router.post("", response_model=CandidateOut, status_code=status.HTTP_201_CREATED)
async def create_candidate(
    payload: CandidateCreateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    data = payload.model_dump()
    data["department"] = data["department"].strip()
    if data.get("email"):
        data["email"] = str(data["email"]).lower()
    candidate = Candidate(**data)
    session.add(candidate)
    await session.flush()
    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action="CANDIDATE_CREATED",
        description=f"Candidate {candidate.full_name} added to {candidate.department}",
        actor_email=user.email,
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(candidate)
    return candidate


@router.put("/{candidate_id}", response_model=CandidateOut)
async def update_candidate(
    candidate_id: int,
    payload: CandidateUpdateIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    candidate = await _get_candidate(session, candidate_id)
    data = payload.model_dump(exclude_unset=True)
    before = {key: getattr(candidate, key) for key in data}
    if data.get("email"):
        data["email"] = str(data["email"]).lower()
    if data.get("status") == CANDIDATE_STATUS_OFFER_SIGNED and candidate.offer_signed_at is None:
        data["offer_signed_at"] = now_local_naive()
    for key, value in data.items():
        setattr(candidate, key, value)
    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action="CANDIDATE_UPDATED",
        description=f"Candidate {candidate.full_name} updated",
        actor_email=user.email,
        meta_json=jsonable_encoder({"before": before, "after": data}),
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(candidate)
    return candidate


@router.delete("/{candidate_id}", response_model=CandidateOut)
async def withdraw_candidate(
    candidate_id: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    candidate = await _get_candidate(session, candidate_id)
    previous = candidate.status
    candidate.status = CANDIDATE_STATUS_WITHDRAWN
    await log_activity(
        session,
        candidate_id=candidate.candidate_id,
        action="CANDIDATE_WITHDRAWN",
        description=f"Candidate {candidate.full_name} withdrawn",
        actor_email=user.email,
        meta_json={"from_status": previous},
        request_id=get_request_context(request).request_id,
    )
    await session.commit()
    await session.refresh(candidate)
    return candidate


@router.get("/{candidate_id}/workflow", response_model=list[WorkflowStepOut])
async def get_candidate_workflow(
    candidate_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    candidate = await _get_candidate(session, candidate_id)
    return await build_workflow(session, candidate)


@router.post("/{candidate_id}/steps/{step_number}/complete", response_model=StepActionOut)
async def complete_candidate_step(
    candidate_id: int,
    step_number: int,
    payload: CompleteStepIn,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    company: CompanySettings = Depends(deps.get_company),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    candidate = await _get_candidate(session, candidate_id)
    try:
        result = await complete_step(
            session,
            candidate,
            step_number,
            company=company,
            actor_email=user.email,
            request_id=get_request_context(request).request_id,
            attachment_paths=payload.attachment_paths,
            overrides=payload.overrides,
        )
    except StepCompletionError as exc:
        raise _step_error(exc) from exc
    await session.commit()
    return StepActionOut(**result.__dict__)


@router.post("/{candidate_id}/steps/{step_number}/unschedule", response_model=StepActionOut)
async def unschedule_candidate_step(
    candidate_id: int,
    step_number: int,
    request: Request,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(EDITOR_ROLES)),
):
    candidate = await _get_candidate(session, candidate_id)
    try:
        result = await unschedule_step(
            session,
            candidate,
            step_number,
            actor_email=user.email,
            request_id=get_request_context(request).request_id,
        )
    except StepCompletionError as exc:
        raise _step_error(exc) from exc
    await session.commit()
    return StepActionOut(**result.__dict__)


@router.get("/{candidate_id}/activity", response_model=list[ActivityOut])
async def list_candidate_activity(
    candidate_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    await _get_candidate(session, candidate_id)
    rows = await session.execute(
        select(ActivityLog)
        .where(ActivityLog.candidate_id == candidate_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.activity_id.desc())
        .limit(limit)
    )
    return rows.scalars().all()


@router.get("/{candidate_id}/emails")
async def list_candidate_emails(
    candidate_id: int,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(require_roles(ALL_ROLES)),
):
    await _get_candidate(session, candidate_id)
    rows = await session.execute(
        select(Email).where(Email.candidate_id == candidate_id).order_by(Email.created_at.desc(), Email.email_id.desc())
    )
    return [
        {
            "email_id": email.email_id,
            "email_type": email.email_type,
            "subject": email.subject,
            "to_email": email.to_email,
            "status": email.status,
            "event_id": email.event_id,
            "error": email.error,
            "sent_at": email.sent_at,
            "created_at": email.created_at,
        }
        for email in rows.scalars().all()
    ]
