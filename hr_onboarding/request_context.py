from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request


@dataclass(frozen=True)
class RequestContext:
    """Per-request identifiers copied into activity rows and access logs."""

    request_id: str
    client_host: str | None = None


def get_request_context(request: Request) -> RequestContext:
    # Set by RequestContextMiddleware; absent only when the app runs without it.
    request_id = getattr(request.state, "request_id", "") or "unknown"
    client_host = request.client.host if request.client is not None else None
    return RequestContext(request_id=request_id, client_host=client_host)
