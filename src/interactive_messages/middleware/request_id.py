"""Request ID middleware — one ID per interaction request for log correlation.

Learn: the receiver, the dispatch and every arbitrator/notifier line that
belongs to one interaction share a request_id in structlog's contextvars.
Webhook deliveries scheduled during the request inherit the context too
(asyncio copies contextvars into new tasks), so a late response_url POST
can be traced back to the request that started it.

An incoming X-Request-ID is reused only if it is a short token; anything
else is replaced, since the header value ends up verbatim in log lines.
"""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(incoming) -> str:
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind request_id and path for the request, echo the ID back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, path=request.url.path
        )

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
