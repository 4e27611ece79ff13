from fastapi import APIRouter

from hr_onboarding.api.routes import auth
from hr_onboarding.api.routes import candidates
from hr_onboarding.api.routes import dashboard
from hr_onboarding.api.routes import department_steps
from hr_onboarding.api.routes import events
from hr_onboarding.api.routes import settings
from hr_onboarding.api.routes import tasks
from hr_onboarding.api.routes import templates

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(candidates.router)
api_router.include_router(department_steps.router)
api_router.include_router(templates.router)
api_router.include_router(events.router)
api_router.include_router(tasks.router)
api_router.include_router(dashboard.router)
api_router.include_router(settings.router)
