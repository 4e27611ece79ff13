from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from hr_onboarding.api.router import api_router
from hr_onboarding.core.config import settings
from hr_onboarding.jobs.scheduler import start_scheduler
from hr_onboarding.middleware.logging import RequestLoggingMiddleware
from hr_onboarding.middleware.request_context import RequestContextMiddleware
from hr_onboarding.services.activity_feed import activity_feed

logging.basicConfig(level=logging.INFO)
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
logger = logging.getLogger("onb")


def create_app(*, start_jobs: bool | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs", redoc_url="/redoc")

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "environment": settings.environment}

    app.include_router(api_router)

    @app.on_event("shutdown")
    async def _close_activity_feed() -> None:
        await activity_feed.close()

    run_jobs = settings.enable_scheduler if start_jobs is None else start_jobs
    if run_jobs:

        @app.on_event("startup")
        async def _startup_jobs() -> None:
            app.state.scheduler = start_scheduler()
            logger.info("scheduler_started")

        @app.on_event("shutdown")
        async def _shutdown_jobs() -> None:
            scheduler = getattr(app.state, "scheduler", None)
            if scheduler:
                scheduler.shutdown()

    return app


app = create_app()
