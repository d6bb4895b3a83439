"""Identification header middleware.

Learn: every response, including 404s for unverified or unhandled
requests, says which library produced it:

    X-Slack-Powered-By: interactive-messages/0.1.0 python/3.12.1 linux
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from interactive_messages.identity import package_identifier

POWERED_BY_HEADER = "X-Slack-Powered-By"


class PoweredByMiddleware(BaseHTTPMiddleware):
    """Add the package identifier to all responses."""

    def __init__(self, app, identifier: str = ""):
        super().__init__(app)
        self.identifier = identifier or package_identifier()

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers[POWERED_BY_HEADER] = self.identifier
        return response
