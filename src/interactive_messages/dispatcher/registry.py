"""Callback registry — ordered, append-only store of (constraint, handler).

Learn: registration order is the tie-breaker. match_first() walks a tuple
snapshot of the entries, so a registration that lands while a dispatch is
matching can never shift entries under it. Entries are frozen and only
reset() (tests, admin tooling) removes them.

Every entry records the convention it was registered with. action()
entries only answer message actions and dialog submissions, options()
entries only answer menu options requests, so one callback_id can carry
both a dynamic select's options handler and its action handler.
"""

import enum
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from interactive_messages.dispatcher.constraints import (
    Constraint,
    RegistrationError,
    matches,
)
from interactive_messages.schemas.payload import InteractionPayload, PayloadKind

__all__ = [
    "CallbackRegistry",
    "HandlerConvention",
    "RegisteredCallback",
    "RegistrationError",
]


class HandlerConvention(str, enum.Enum):
    ACTION = "action"    # handler(payload, respond)
    OPTIONS = "options"  # handler(payload)

    @classmethod
    def for_payload(cls, payload: InteractionPayload) -> "HandlerConvention":
        if payload.kind is PayloadKind.MENU_OPTIONS:
            return cls.OPTIONS
        return cls.ACTION


@dataclass(frozen=True)
class RegisteredCallback:
    constraint: Constraint
    handler: Callable[..., Any]
    convention: HandlerConvention = HandlerConvention.ACTION


class CallbackRegistry:
    def __init__(self):
        self._entries: list[RegisteredCallback] = []

    def register(
        self,
        constraint_or_id: Any,
        handler: Callable[..., Any],
        convention: HandlerConvention = HandlerConvention.ACTION,
    ) -> RegisteredCallback:
        """Validate and append a registration. Raises RegistrationError."""
        if not callable(handler):
            raise RegistrationError("Handler must be callable")
        entry = RegisteredCallback(
            constraint=Constraint.coerce(constraint_or_id),
            handler=handler,
            convention=HandlerConvention(convention),
        )
        self._entries.append(entry)
        return entry

    def match_first(self, payload: InteractionPayload) -> Optional[RegisteredCallback]:
        """First entry (in registration order) of the payload's convention
        whose constraint matches, else None."""
        convention = HandlerConvention.for_payload(payload)
        for entry in tuple(self._entries):
            if entry.convention is convention and matches(entry.constraint, payload):
                return entry
        return None

    def reset(self) -> None:
        """Drop every registration."""
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegisteredCallback]:
        return iter(tuple(self._entries))
