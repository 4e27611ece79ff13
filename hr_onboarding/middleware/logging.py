from __future__ import annotations

import logging
from time import perf_counter

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from hr_onboarding.request_context import get_request_context

logger = logging.getLogger("onb.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One access log line per request, tagged with the request id."""

    async def dispatch(self, request: Request, call_next):
        started = perf_counter()
        response = await call_next(request)
        ctx = get_request_context(request)
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "request_id": ctx.request_id,
                "client_host": ctx.client_host,
                "elapsed_ms": round((perf_counter() - started) * 1000),
            },
        )
        return response
