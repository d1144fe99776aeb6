"""Logging context middleware for request correlation."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.app.core.logging import bind_actor_context, bind_request_context, clear_request_context

# Set by the upstream gateway after authentication
ACTOR_HEADER = "X-Actor-ID"


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Bind request_id (and the authenticated actor, if known) to log context."""
    clear_request_context()
    bind_request_context(correlation_id.get())
    actor_id = request.headers.get(ACTOR_HEADER)
    if actor_id:
        bind_actor_context(actor_id)
    try:
        response = await call_next(request)
        return response
    finally:
        clear_request_context()
