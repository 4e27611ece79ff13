from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from hr_onboarding.models.activity import ActivityLog
from hr_onboarding.services.activity_feed import activity_feed


async def log_activity(
    session: AsyncSession,
    *,
    action: str,
    candidate_id: int | None = None,
    description: str | None = None,
    actor_email: str | None = None,
    meta_json: Dict[str, Any] | None = None,
    request_id: str | None = None,
) -> ActivityLog:
    activity = ActivityLog(
        candidate_id=candidate_id,
        action=action,
        description=description,
        actor_email=actor_email,
        meta_json=meta_json,
        request_id=request_id,
    )
    session.add(activity)
    await session.flush()
    await activity_feed.publish(
        {
            "activity_id": activity.activity_id,
            "candidate_id": activity.candidate_id,
            "action": activity.action,
            "description": activity.description,
        }
    )
    return activity
