"""Pydantic schema for decoded interaction payloads.

Learn: an interaction payload is a tagged union. The transport decodes the
raw JSON once with parse_payload(), which sniffs the shape and fills in the
`kind` discriminant. Everything downstream (matcher, arbitrator) reads the
typed fields and never re-inspects the raw dict.

Kinds:
- 'interactive_message': button/select action on a message (has response_url)
- 'dialog_submission': a submitted dialog form (has response_url)
- 'menu_options': a request for dynamic select options (no response_url,
  answered synchronously only)
"""

import enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class InvalidPayloadError(ValueError):
    """Raised when a payload does not look like any known interaction kind."""


class PayloadKind(str, enum.Enum):
    INTERACTIVE_MESSAGE = "interactive_message"
    DIALOG_SUBMISSION = "dialog_submission"
    MENU_OPTIONS = "menu_options"


class InteractionPayload(BaseModel):
    """A decoded interaction with its discriminant and routing fields."""
    kind: PayloadKind
    callback_id: Optional[str] = Field(None, description="Sender-chosen routing tag")
    interaction_type: Optional[str] = Field(
        None, description="Control that produced the event (button, select, ...)"
    )
    response_url: Optional[str] = Field(
        None, description="Where follow-up deliveries are POSTed"
    )
    is_unfurl: bool = False
    data: dict[str, Any] = Field(default_factory=dict, description="Raw payload")

    model_config = {"frozen": True}

    @property
    def supports_async_delivery(self) -> bool:
        return bool(self.response_url)


# ─── Decoding ───────────────────────────────────────────


def _infer_kind(data: dict[str, Any]) -> PayloadKind:
    if "submission" in data or data.get("type") == "dialog_submission":
        return PayloadKind.DIALOG_SUBMISSION
    if "actions" in data or data.get("response_url"):
        return PayloadKind.INTERACTIVE_MESSAGE
    if "name" in data or "value" in data:
        return PayloadKind.MENU_OPTIONS
    raise InvalidPayloadError(
        "Payload has none of actions, submission, response_url or name/value"
    )


def _interaction_type(kind: PayloadKind, data: dict[str, Any]) -> Optional[str]:
    if kind is PayloadKind.MENU_OPTIONS:
        return "menu_options"
    if kind is PayloadKind.INTERACTIVE_MESSAGE:
        actions = data.get("actions")
        if isinstance(actions, list) and actions and isinstance(actions[0], dict):
            return actions[0].get("type")
    return data.get("type")


def parse_payload(data: Any) -> InteractionPayload:
    """Decode a raw payload dict into an InteractionPayload.

    Raises InvalidPayloadError for non-objects and unrecognized shapes.
    """
    if isinstance(data, InteractionPayload):
        return data
    if not isinstance(data, dict):
        raise InvalidPayloadError(
            f"Payload must be a JSON object, got {type(data).__name__}"
        )

    kind = _infer_kind(data)
    callback_id = data.get("callback_id")
    if callback_id is not None and not isinstance(callback_id, str):
        raise InvalidPayloadError("callback_id must be a string")

    return InteractionPayload(
        kind=kind,
        callback_id=callback_id,
        interaction_type=_interaction_type(kind, data),
        response_url=data.get("response_url") or None,
        is_unfurl=bool(data.get("is_app_unfurl")),
        data=data,
    )
