"""MessageAdapter — the public face of the package.

Learn: application code registers handlers with action() and options(),
and the transport calls dispatch() for each decoded payload:

    adapter = create_message_adapter(signing_secret)

    @adapter.action("approve_request")
    def on_approve(payload, respond):
        return {"text": "Approved"}

    @adapter.options({"callback_id": "pick_team"})
    async def team_options(payload):
        return {"options": await load_teams()}

action() and options() can be used as decorators or called directly
with a handler (chainable). Both raise RegistrationError at once on bad
input, never later at dispatch time.

The method a handler was registered with decides which payloads it can
answer: action() handlers see message actions and dialog submissions,
options() handlers see menu options requests. Registering both for one
callback_id is the usual setup for a select with external options.
"""

from typing import Any, Callable, Optional, Union

import structlog

from interactive_messages.config import settings
from interactive_messages.dispatcher.arbitrator import DispatchStats, ResponseArbitrator
from interactive_messages.dispatcher.constraints import Constraint
from interactive_messages.dispatcher.registry import CallbackRegistry, HandlerConvention
from interactive_messages.schemas.dispatch import DispatchResult
from interactive_messages.schemas.payload import InteractionPayload, parse_payload
from interactive_messages.services.notifier import WebhookNotifier

logger = structlog.get_logger()

Handler = Callable[..., Any]


class MessageAdapter:
    def __init__(
        self,
        signing_secret: Optional[str] = None,
        *,
        sync_response_timeout: Optional[float] = None,
        options_response_limit: Optional[float] = None,
        notifier: Optional[WebhookNotifier] = None,
    ):
        if signing_secret is not None and not isinstance(signing_secret, str):
            raise TypeError("signing_secret must be a string")
        self.signing_secret = signing_secret
        self.sync_response_timeout = (
            sync_response_timeout
            if sync_response_timeout is not None
            else settings.sync_response_timeout
        )
        if self.sync_response_timeout <= 0:
            raise ValueError("sync_response_timeout must be positive")
        self.options_response_limit = (
            options_response_limit
            if options_response_limit is not None
            else settings.options_response_limit
        )
        if self.options_response_limit <= 0:
            raise ValueError("options_response_limit must be positive")
        self.notifier = notifier or WebhookNotifier(timeout=settings.webhook_timeout)
        self.registry = CallbackRegistry()
        self.stats = DispatchStats()

    # ─── Registration ─────────────────────────────────────

    def action(self, constraint_or_id: Any, handler: Optional[Handler] = None):
        """Register a handler for message actions and dialog submissions.

        The handler is called as handler(payload, respond).
        """
        return self._register(constraint_or_id, handler, HandlerConvention.ACTION)

    def options(self, constraint_or_id: Any, handler: Optional[Handler] = None):
        """Register a handler for menu options requests.

        The handler is called as handler(payload) and must answer with its
        return value; there is no respond capability for options.
        """
        return self._register(constraint_or_id, handler, HandlerConvention.OPTIONS)

    def _register(
        self,
        constraint_or_id: Any,
        handler: Optional[Handler],
        convention: HandlerConvention,
    ) -> Union["MessageAdapter", Callable[[Handler], Handler]]:
        if handler is not None:
            self.registry.register(constraint_or_id, handler, convention)
            return self

        # Decorator form: validate the constraint now, not when decorating
        constraint = Constraint.coerce(constraint_or_id)

        def decorator(fn: Handler) -> Handler:
            self.registry.register(constraint, fn, convention)
            return fn

        return decorator

    def reset(self) -> None:
        """Unregister every handler (tests and admin tooling)."""
        self.registry.reset()

    # ─── Dispatch ─────────────────────────────────────────

    def dispatch(
        self, payload: Union[InteractionPayload, dict]
    ) -> Optional[DispatchResult]:
        """Route a payload to its handler.

        Returns None when no registration matches so the transport can fall
        through. Must be called from inside a running event loop; the
        returned content may be an awaitable settled by the loop.
        Raises InvalidPayloadError for raw dicts of an unknown shape.
        """
        payload = parse_payload(payload)
        entry = self.registry.match_first(payload)
        if entry is None:
            self.stats.unhandled += 1
            logger.debug(
                "dispatch.unhandled",
                callback_id=payload.callback_id,
                kind=payload.kind.value,
            )
            return None

        self.stats.dispatched += 1
        arbitrator = ResponseArbitrator(
            payload,
            self.notifier,
            timeout=self.sync_response_timeout,
            options_limit=self.options_response_limit,
            stats=self.stats,
        )
        return arbitrator.run(entry.handler)

    # ─── Lifecycle ────────────────────────────────────────

    async def aclose(self) -> None:
        """Wait for pending webhook deliveries and release the HTTP client."""
        await self.notifier.aclose()

    def get_stats(self) -> dict:
        return {
            "handlers": len(self.registry),
            "dispatched": self.stats.dispatched,
            "unhandled": self.stats.unhandled,
            "timed_out": self.stats.timed_out,
            "async_deliveries": self.stats.async_deliveries,
            "dropped_deliveries": self.stats.dropped_deliveries,
            "handler_errors": self.stats.handler_errors,
            "options_abandoned": self.stats.options_abandoned,
            "webhooks_in_flight": self.notifier.in_flight,
        }


def create_message_adapter(
    signing_secret: Optional[str] = None, **options: Any
) -> MessageAdapter:
    """Factory for MessageAdapter. Defaults come from settings."""
    if signing_secret is None:
        signing_secret = settings.signing_secret
    return MessageAdapter(signing_secret, **options)
