"""Request signature verification + body decoding for inbound interactions.

Learn: every interaction request is signed with the app's signing secret:

    X-Slack-Request-Timestamp: 1531420618
    X-Slack-Signature: v0=<hex hmac_sha256(secret, "v0:{timestamp}:{raw body}")>

We reject requests older than request_max_age_seconds (replay window),
then compare signatures in constant time. Both checks run on the raw body
bytes before anything is parsed.
"""

import enum
import hashlib
import hmac
import json
import time
from typing import Any, Optional
from urllib.parse import parse_qs

SIGNATURE_VERSION = "v0"


class ErrorCode(str, enum.Enum):
    """Codes attached to transport errors (stable, safe to match on)."""
    SIGNATURE_VERIFICATION_FAILURE = "SLACKMESSAGEMIDDLEWARE_REQUEST_SIGNATURE_VERIFICATION_FAILURE"
    REQUEST_TIME_FAILURE = "SLACKMESSAGEMIDDLEWARE_REQUEST_TIMELIMIT_FAILURE"
    BODY_PARSING_FAILURE = "SLACKMESSAGEMIDDLEWARE_BODY_PARSING_FAILURE"


class RequestVerificationError(Exception):
    code: ErrorCode = ErrorCode.SIGNATURE_VERIFICATION_FAILURE


class SignatureVerificationError(RequestVerificationError):
    code = ErrorCode.SIGNATURE_VERIFICATION_FAILURE


class RequestTimestampError(RequestVerificationError):
    code = ErrorCode.REQUEST_TIME_FAILURE


class BodyParsingError(Exception):
    code = ErrorCode.BODY_PARSING_FAILURE


# ─── Signatures ─────────────────────────────────────────


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    basestring = f"{SIGNATURE_VERSION}:{timestamp}:".encode() + body
    digest = hmac.new(secret.encode(), basestring, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_signature(
    secret: str,
    body: bytes,
    signature: Optional[str],
    timestamp: Optional[str],
    *,
    max_age_seconds: int = 300,
    now: Optional[float] = None,
) -> bool:
    """Verify a signed request. Raises on failure, returns True on success."""
    if not signature or not timestamp:
        raise SignatureVerificationError("Missing signature or timestamp header")

    try:
        ts = int(timestamp)
    except ValueError:
        raise RequestTimestampError(f"Malformed request timestamp {timestamp!r}")

    current = int(now if now is not None else time.time())
    if ts < current - max_age_seconds:
        raise RequestTimestampError("Request is older than the allowed window")

    expected = compute_signature(secret, timestamp, body)
    if not hmac.compare_digest(expected, signature):
        raise SignatureVerificationError("Request signature is not valid")
    return True


# ─── Body decoding ──────────────────────────────────────


def parse_body(body: bytes, content_type: Optional[str]) -> dict[str, Any]:
    """Decode a form-encoded or JSON request body into a dict.

    Form bodies carry the interaction as a JSON string in their `payload`
    field; JSON bodies may do the same or be the payload themselves.
    ssl_check bodies are returned as-is.
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    try:
        text = body.decode("utf-8")
        if mime == "application/x-www-form-urlencoded":
            form = {k: v[0] for k, v in parse_qs(text).items()}
        elif mime == "application/json":
            form = json.loads(text)
        else:
            raise BodyParsingError(f"Unsupported content type {content_type!r}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BodyParsingError(f"Could not decode request body: {e}")

    if not isinstance(form, dict):
        raise BodyParsingError("Request body must decode to an object")
    if form.get("ssl_check"):
        return form

    raw = form.get("payload")
    if raw is None:
        return form
    if isinstance(raw, dict):
        return raw
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise BodyParsingError(f"Could not decode payload field: {e}")
    if not isinstance(payload, dict):
        raise BodyParsingError("payload field must be a JSON object")
    return payload
