"""Test fixtures — an adapter with a short budget and a recording webhook transport.

Learn: outbound webhook POSTs go through an httpx.MockTransport, so tests
can assert on exactly what would have been sent to response_url without
any network. The synchronous budget is shortened to TIMEOUT so timing
tests finish in a fraction of a second.
"""

import asyncio
import json
import time

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from interactive_messages.adapter import create_message_adapter
from interactive_messages.auth.signature import compute_signature
from interactive_messages.main import create_app
from interactive_messages.services.notifier import WebhookNotifier

SIGNING_SECRET = "SIGNING_SECRET"
TIMEOUT = 0.1  # seconds; stands in for the 2.5s production budget


class WebhookRecorder:
    """Collects every request the notifier sends."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    @property
    def bodies(self) -> list:
        return [json.loads(r.content) for r in self.requests]

    async def wait_for(self, count: int, timeout: float = 2.0) -> None:
        """Wait until `count` requests have been recorded."""
        async def _poll():
            while len(self.requests) < count:
                await asyncio.sleep(0.005)
        await asyncio.wait_for(_poll(), timeout)


@pytest.fixture()
def webhooks():
    return WebhookRecorder()


@pytest_asyncio.fixture()
async def notifier(webhooks):
    notifier = WebhookNotifier(transport=httpx.MockTransport(webhooks))
    yield notifier
    await notifier.aclose()


@pytest_asyncio.fixture()
async def adapter(notifier):
    return create_message_adapter(
        SIGNING_SECRET,
        sync_response_timeout=TIMEOUT,
        notifier=notifier,
    )


@pytest_asyncio.fixture()
async def client(adapter):
    """HTTP client for the ASGI app wrapping `adapter`."""
    app = create_app(adapter)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def signed_headers(body: bytes, *, secret: str = SIGNING_SECRET, ts=None,
                   content_type: str = "application/x-www-form-urlencoded") -> dict:
    """Headers for a correctly signed interaction request."""
    timestamp = str(int(ts if ts is not None else time.time()))
    return {
        "X-Slack-Signature": compute_signature(secret, timestamp, body),
        "X-Slack-Request-Timestamp": timestamp,
        "Content-Type": content_type,
    }


def message_payload(**overrides) -> dict:
    payload = {
        "type": "interactive_message",
        "callback_id": "id",
        "actions": [{"name": "approve", "type": "button", "value": "yes"}],
        "text": "example input message",
        "response_url": "https://example.com/respond",
    }
    payload.update(overrides)
    return payload


def dialog_payload(**overrides) -> dict:
    payload = {
        "type": "dialog_submission",
        "callback_id": "feedback_dialog",
        "submission": {"comment": "looks good"},
        "response_url": "https://example.com/dialog",
    }
    payload.update(overrides)
    return payload


def options_payload(**overrides) -> dict:
    payload = {
        "callback_id": "pick_team",
        "name": "team",
        "value": "eng",
    }
    payload.update(overrides)
    return payload
