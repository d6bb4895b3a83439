"""Constraint matching — decides whether a registration applies to a payload.

Learn: a Constraint is an immutable AND of up to three optional fields.
Missing fields are wildcards, so an empty Constraint matches everything.

    callback_id  exact string (equality) or compiled pattern (re.search)
    type         interaction type, one of ALLOWED_TYPES
    unfurl       whether the payload came from an app unfurl

Validation happens in Constraint.coerce() at registration time so that a
typo in `type` fails at startup instead of silently never matching.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from interactive_messages.schemas.payload import InteractionPayload

ALLOWED_TYPES = frozenset({"button", "select", "dialog_submission", "menu_options"})

CallbackId = Union[str, re.Pattern]


class RegistrationError(TypeError):
    """Raised synchronously when action()/options() is called with bad arguments."""


class InvalidConstraintError(RegistrationError):
    """Raised when a constraint (or callback_id shorthand) is malformed."""


@dataclass(frozen=True)
class Constraint:
    callback_id: Optional[CallbackId] = None
    type: Optional[str] = None
    unfurl: Optional[bool] = None

    @classmethod
    def coerce(cls, value: Any) -> "Constraint":
        """Build a Constraint from a callback_id shorthand, a mapping, or a Constraint."""
        if isinstance(value, Constraint):
            return cls._validated(value.callback_id, value.type, value.unfurl)
        if isinstance(value, (str, re.Pattern)):
            return cls(callback_id=value)
        if isinstance(value, Mapping):
            return cls._from_mapping(value)
        raise InvalidConstraintError(
            "Callback ID must be a string or a compiled pattern, "
            f"or constraints must be a mapping (got {type(value).__name__})"
        )

    @classmethod
    def _from_mapping(cls, value: Mapping) -> "Constraint":
        fields = dict(value)
        callback_id = fields.pop("callback_id", None)
        camel = fields.pop("callbackId", None)
        if callback_id is not None and camel is not None:
            raise InvalidConstraintError("Give either callback_id or callbackId, not both")
        callback_id = callback_id if callback_id is not None else camel
        type_ = fields.pop("type", None)
        unfurl = fields.pop("unfurl", None)
        if fields:
            raise InvalidConstraintError(
                f"Unknown constraint keys: {', '.join(sorted(map(str, fields)))}"
            )
        return cls._validated(callback_id, type_, unfurl)

    @classmethod
    def _validated(cls, callback_id, type_, unfurl) -> "Constraint":
        if callback_id is not None and not isinstance(callback_id, (str, re.Pattern)):
            raise InvalidConstraintError(
                f"callback_id must be a string or a compiled pattern, got {type(callback_id).__name__}"
            )
        if type_ is not None and type_ not in ALLOWED_TYPES:
            raise InvalidConstraintError(
                f"Invalid action type {type_!r}; expected one of {sorted(ALLOWED_TYPES)}"
            )
        if unfurl is not None and not isinstance(unfurl, bool):
            raise InvalidConstraintError("unfurl must be a boolean")
        return cls(callback_id=callback_id, type=type_, unfurl=unfurl)


def matches(constraint: Constraint, payload: InteractionPayload) -> bool:
    """True when every field set on the constraint agrees with the payload."""
    if constraint.callback_id is not None:
        if payload.callback_id is None:
            return False
        if isinstance(constraint.callback_id, re.Pattern):
            if not constraint.callback_id.search(payload.callback_id):
                return False
        elif constraint.callback_id != payload.callback_id:
            return False

    if constraint.type is not None and constraint.type != payload.interaction_type:
        return False

    if constraint.unfurl is not None and constraint.unfurl != payload.is_unfurl:
        return False

    return True
