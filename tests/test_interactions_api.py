"""HTTP transport tests — the interaction receiver end to end.

Learn: tests cover:
1. Signature verification (404 on failure, as the platform expects)
2. ssl_check pings and malformed bodies
3. Dispatch results rendered as JSON / text / empty bodies
4. Fall-through 404 when no handler matches
5. Timeout answers followed by response_url deliveries
6. Identification + request ID headers, health endpoint
"""

import asyncio
import json
import time
from urllib.parse import urlencode

import pytest

from conftest import TIMEOUT, message_payload, options_payload, signed_headers
from interactive_messages.adapter import MessageAdapter
from interactive_messages.main import create_app

ACTIONS = "/slack/actions"


def form_body(payload: dict) -> bytes:
    return urlencode({"payload": json.dumps(payload)}).encode()


async def post_signed(client, payload: dict):
    body = form_body(payload)
    return await client.post(ACTIONS, content=body, headers=signed_headers(body))


# ═══════════════════════════════════════════════════════════
# Verification + decoding
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signed_request_is_dispatched(client, adapter):
    adapter.action("id", lambda payload, respond: {"text": "ok"})
    r = await post_signed(client, message_payload())
    assert r.status_code == 200
    assert r.json() == {"text": "ok"}
    assert adapter.stats.dispatched == 1


@pytest.mark.asyncio
async def test_bad_signature_is_404(client, adapter):
    adapter.action("id", lambda payload, respond: {"text": "ok"})
    body = form_body(message_payload())
    r = await client.post(ACTIONS, content=body, headers=signed_headers(body, secret="WRONG"))
    assert r.status_code == 404
    assert adapter.stats.dispatched == 0


@pytest.mark.asyncio
async def test_stale_request_is_404(client, adapter):
    adapter.action("id", lambda payload, respond: {"text": "ok"})
    body = form_body(message_payload())
    headers = signed_headers(body, ts=time.time() - 600)
    r = await client.post(ACTIONS, content=body, headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_ssl_check_answers_without_dispatching(client, adapter):
    calls = []
    adapter.action({}, lambda payload, respond: calls.append(payload))
    body = b"ssl_check=1&token=abc"
    r = await client.post(ACTIONS, content=body, headers=signed_headers(body))
    assert r.status_code == 200
    assert r.content == b""
    assert calls == []


@pytest.mark.asyncio
async def test_json_bodies_are_accepted(client, adapter):
    adapter.options("pick_team", lambda payload: {"options": []})
    body = json.dumps(options_payload()).encode()
    r = await client.post(
        ACTIONS, content=body,
        headers=signed_headers(body, content_type="application/json"),
    )
    assert r.status_code == 200
    assert r.json() == {"options": []}


@pytest.mark.asyncio
async def test_unparseable_body_is_400(client):
    body = b"payload=%7Bnope"
    r = await client.post(ACTIONS, content=body, headers=signed_headers(body))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_unknown_payload_shape_is_400(client):
    r = await post_signed(client, {"callback_id": "id"})
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Dispatch results
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unmatched_dispatch_falls_through_to_404(client, adapter):
    adapter.action("other", lambda payload, respond: "nope")
    r = await post_signed(client, message_payload())
    assert r.status_code == 404
    assert adapter.stats.unhandled == 1


@pytest.mark.asyncio
async def test_string_content_is_the_literal_body(client, adapter):
    adapter.action("id", lambda payload, respond: "hello, world")
    r = await post_signed(client, message_payload())
    assert r.status_code == 200
    assert r.text == "hello, world"


@pytest.mark.asyncio
async def test_object_content_is_json(client, adapter):
    content = {"abc": "def", "ghi": True, "jkl": ["m", "n", "o"], "p": 5}
    adapter.action("id", lambda payload, respond: content)
    r = await post_signed(client, message_payload())
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == content


@pytest.mark.asyncio
async def test_slow_handler_gets_empty_answer_then_webhook(client, adapter, webhooks):
    async def slow(payload, respond):
        await asyncio.sleep(TIMEOUT + 0.02)
        return {"text": "late"}

    adapter.action("id", slow)
    r = await post_signed(client, message_payload())
    assert r.status_code == 200
    assert r.content == b""

    await webhooks.wait_for(1)
    assert webhooks.bodies == [{"text": "late"}]
    assert str(webhooks.requests[0].url) == "https://example.com/respond"


# ═══════════════════════════════════════════════════════════
# Headers + health
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_identification_header_on_every_response(client, adapter):
    adapter.action("id", lambda payload, respond: "ok")
    ok = await post_signed(client, message_payload())
    missing = await post_signed(client, message_payload(callback_id="nobody"))
    for r in (ok, missing):
        assert r.headers["X-Slack-Powered-By"].startswith("interactive-messages/")


@pytest.mark.asyncio
async def test_request_id_generated_and_propagated(client):
    r1 = await client.get("/health")
    r2 = await client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert "X-Request-ID" in r1.headers
    assert r2.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_unsafe_request_id_is_replaced(client):
    r = await client.get("/health", headers={"X-Request-ID": "not a token " + "x" * 200})
    request_id = r.headers["X-Request-ID"]
    assert " " not in request_id
    assert len(request_id) == 32


@pytest.mark.asyncio
async def test_health_reports_stats(client, adapter):
    adapter.action("id", lambda payload, respond: "ok")
    await post_signed(client, message_payload())
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert data["handlers"] == 1
    assert data["dispatched"] == 1


# ═══════════════════════════════════════════════════════════
# App factory
# ═══════════════════════════════════════════════════════════


def test_create_app_requires_secret_outside_development():
    with pytest.raises(ValueError, match="signing secret"):
        create_app(MessageAdapter(None), allow_unsigned=False)


@pytest.mark.asyncio
async def test_unsigned_app_skips_verification(notifier):
    from httpx import ASGITransport, AsyncClient

    adapter = MessageAdapter(None, notifier=notifier)
    adapter.action("id", lambda payload, respond: {"text": "ok"})
    app = create_app(adapter, actions_path="/actions", allow_unsigned=True)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        body = form_body(message_payload())
        r = await ac.post(
            "/actions", content=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
    assert r.status_code == 200
    assert r.json() == {"text": "ok"}
