"""Interactions API — the POST endpoint the platform calls on every interaction.

Learn: this module is plain transport. In order:
1. Read the raw body and verify the request signature (404 on failure)
2. Decode the form/JSON body; answer ssl_check pings with an empty 200
3. Decode the interaction payload (400 if it has an unknown shape)
4. adapter.dispatch() → 404 when no handler matches ("unhandled")
5. Await the synchronous content and write it: str as text, objects as JSON

The adapter itself is stored on app.state by create_app() and injected
with get_adapter().
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from interactive_messages.adapter import MessageAdapter
from interactive_messages.auth.signature import (
    BodyParsingError,
    RequestVerificationError,
    parse_body,
    verify_signature,
)
from interactive_messages.config import settings
from interactive_messages.schemas.payload import InvalidPayloadError, parse_payload

logger = structlog.get_logger()


def get_adapter(request: Request) -> MessageAdapter:
    return request.app.state.adapter


def render_content(status: int, content: Any) -> Response:
    """Serialize dispatch content the way the platform expects it."""
    if content is None or content == "":
        return Response(status_code=status)
    if isinstance(content, str):
        return PlainTextResponse(content, status_code=status)
    return JSONResponse(content, status_code=status)


def build_router(path: str = "/slack/actions") -> APIRouter:
    """Router with the interaction receiver mounted at `path`."""
    router = APIRouter()

    @router.post(path)
    async def receive_interaction(
        request: Request,
        adapter: MessageAdapter = Depends(get_adapter),
    ):
        """Receive, verify and dispatch one interaction."""
        body = await request.body()

        if adapter.signing_secret:
            try:
                verify_signature(
                    adapter.signing_secret,
                    body,
                    request.headers.get("X-Slack-Signature"),
                    request.headers.get("X-Slack-Request-Timestamp"),
                    max_age_seconds=settings.request_max_age_seconds,
                )
            except RequestVerificationError as e:
                logger.warning("interactions.verification_failed", code=e.code.value)
                raise HTTPException(status_code=404, detail="Not found")

        try:
            form = parse_body(body, request.headers.get("content-type"))
        except BodyParsingError as e:
            logger.warning("interactions.bad_body", code=e.code.value, error=str(e))
            raise HTTPException(status_code=400, detail=str(e))

        if form.get("ssl_check"):
            return Response(status_code=200)

        try:
            payload = parse_payload(form)
        except InvalidPayloadError as e:
            raise HTTPException(status_code=400, detail=str(e))

        result = adapter.dispatch(payload)
        if result is None:
            raise HTTPException(status_code=404, detail="No handler for interaction")

        content = await result.resolve()
        return render_content(result.status, content)

    return router
