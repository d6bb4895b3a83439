"""Response arbitrator — races handler deliveries against the response budget.

Learn: the caller gives us a fixed budget (2.5s by default) to answer the
original request. Handlers may answer immediately, later, or several
times. The arbitrator reconciles that with exactly one synchronous answer:

    PENDING ──delivery──▶ SYNC_SLOT_FILLED   (content = the delivery)
       │
       └────timer──────▶ TIMED_OUT           (content = "")

The synchronous slot is a single-assignment future fed by two channels,
deliveries and the timer. Transitions happen at event time, inside the
callback that observed the event, so the first arrival always wins and
the loser is cancelled right there (a delivery cancels the timer; an
expired timer has nothing left to cancel).

A "delivery" is either a respond(content) call or the handler's own
return value (immediately for a plain value, on resolution for an
awaitable, never for None). Every delivery after the slot closed is sent
through the WebhookNotifier to the payload's response_url, one POST each,
started in delivery order.

Menu options requests are different: no respond capability and no timer.
Their content is the handler's single return value whenever it arrives,
since there is no response_url to fall back to.
Only a hard cap (options_limit) stops a handler that never settles: the
handler is cancelled and the request answers "".

Handler failures (raising, or returning an awaitable that fails) are logged
and count as "no delivery". The timer still decides the synchronous
answer, so the caller gets the empty timeout-shaped response instead of
an error.
"""

import asyncio
import enum
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

from interactive_messages.schemas.dispatch import DispatchResult
from interactive_messages.schemas.payload import InteractionPayload, PayloadKind
from interactive_messages.services.notifier import WebhookNotifier

logger = structlog.get_logger()

EMPTY_CONTENT = ""


class ArbitrationState(str, enum.Enum):
    PENDING = "pending"
    SYNC_SLOT_FILLED = "sync_slot_filled"
    TIMED_OUT = "timed_out"


@dataclass
class DispatchStats:
    """Runtime counters, shared by every arbitrator of one adapter."""
    dispatched: int = 0
    unhandled: int = 0
    timed_out: int = 0
    async_deliveries: int = 0
    dropped_deliveries: int = 0
    handler_errors: int = 0
    options_abandoned: int = 0


class ResponseArbitrator:
    """Per-dispatch state machine. Single use: run once, never reopens."""

    def __init__(
        self,
        payload: InteractionPayload,
        notifier: WebhookNotifier,
        *,
        timeout: float,
        options_limit: Optional[float] = None,
        stats: Optional[DispatchStats] = None,
    ):
        self.payload = payload
        self.notifier = notifier
        self.timeout = timeout
        self.options_limit = options_limit
        self.stats = stats or DispatchStats()
        self.state = ArbitrationState.PENDING
        self.deliveries = 0

        self._loop = asyncio.get_running_loop()
        self._slot: asyncio.Future = self._loop.create_future()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._handler_future: Optional[asyncio.Future] = None
        self._started = False
        self._log = logger.bind(
            callback_id=payload.callback_id, kind=payload.kind.value
        )

    # ─── Entry points ─────────────────────────────────────

    def run(self, handler: Callable[..., Any]) -> DispatchResult:
        """Invoke the handler with the convention its payload kind calls for."""
        if self._started:
            raise RuntimeError("ResponseArbitrator is single-use")
        self._started = True

        if self.payload.kind is PayloadKind.MENU_OPTIONS:
            return self._run_options(handler)
        return self._run_action(handler)

    def respond(self, content: Any) -> Awaitable:
        """The respond capability handed to action handlers.

        Returns an awaitable that completes once the delivery is handed off:
        at once for the synchronous slot, when the POST finishes otherwise.
        """
        return self._deliver(content)

    # ─── Action / dialog handlers ─────────────────────────

    def _run_action(self, handler: Callable[..., Any]) -> DispatchResult:
        self._timer = self._loop.call_later(self.timeout, self._expire)
        try:
            returned = handler(self.payload.data, self.respond)
        except Exception:
            self.stats.handler_errors += 1
            self._log.exception("arbitrator.handler_failed")
            returned = None

        if inspect.isawaitable(returned):
            self._handler_future = asyncio.ensure_future(returned)
            self._handler_future.add_done_callback(self._on_handler_settled)
        elif returned is not None:
            self._deliver(returned)

        return self._result()

    def _on_handler_settled(self, fut: asyncio.Future) -> None:
        if fut.cancelled():
            self._log.warning("arbitrator.handler_cancelled")
            return
        exc = fut.exception()
        if exc is not None:
            self.stats.handler_errors += 1
            self._log.error("arbitrator.handler_failed", exc_info=exc)
            return
        value = fut.result()
        if value is not None:
            self._deliver(value)

    def _deliver(self, content: Any) -> Awaitable:
        self.deliveries += 1
        if self.state is ArbitrationState.PENDING:
            self._close(ArbitrationState.SYNC_SLOT_FILLED, content)
            done = self._loop.create_future()
            done.set_result(None)
            return done
        return self._deliver_async(content)

    def _deliver_async(self, content: Any) -> Awaitable:
        if not self.payload.supports_async_delivery:
            self.stats.dropped_deliveries += 1
            self._log.warning("arbitrator.delivery_dropped", reason="no response_url")
            done = self._loop.create_future()
            done.set_result(None)
            return done

        self.stats.async_deliveries += 1
        self._log.info("arbitrator.async_delivery", delivery=self.deliveries)
        return self.notifier.notify(self.payload.response_url, content)

    def _expire(self) -> None:
        self._timer = None
        if self.state is not ArbitrationState.PENDING:
            return
        self.stats.timed_out += 1
        self._log.info("arbitrator.timed_out", timeout=self.timeout)
        self._close(ArbitrationState.TIMED_OUT, EMPTY_CONTENT)

    def _close(self, state: ArbitrationState, content: Any) -> None:
        self.state = state
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._slot.set_result(content)

    # ─── Menu options handlers ────────────────────────────

    def _run_options(self, handler: Callable[..., Any]) -> DispatchResult:
        started_at = self._loop.time()
        try:
            returned = handler(self.payload.data)
        except Exception:
            self.stats.handler_errors += 1
            self._log.exception("arbitrator.handler_failed")
            returned = None

        if not inspect.isawaitable(returned):
            self._close_options(returned)
            return self._result()

        def settled(fut: asyncio.Future) -> None:
            if self._slot.done():
                return
            value = None
            if fut.cancelled():
                self._log.warning("arbitrator.handler_cancelled")
            elif fut.exception() is not None:
                self.stats.handler_errors += 1
                self._log.error("arbitrator.handler_failed", exc_info=fut.exception())
            else:
                value = fut.result()
            elapsed = self._loop.time() - started_at
            if elapsed > self.timeout:
                self._log.warning(
                    "arbitrator.options_over_budget",
                    elapsed=round(elapsed, 3),
                    timeout=self.timeout,
                )
            self._close_options(value)

        self._handler_future = asyncio.ensure_future(returned)
        self._handler_future.add_done_callback(settled)
        if self.options_limit is not None:
            self._timer = self._loop.call_later(self.options_limit, self._abandon_options)
        return self._result()

    def _abandon_options(self) -> None:
        self._timer = None
        if self._slot.done():
            return
        self.stats.options_abandoned += 1
        self._log.warning("arbitrator.options_abandoned", limit=self.options_limit)
        self._close(ArbitrationState.TIMED_OUT, EMPTY_CONTENT)
        if self._handler_future is not None:
            self._handler_future.cancel()

    def _close_options(self, value: Any) -> None:
        if value is None:
            value = EMPTY_CONTENT
        else:
            self.deliveries += 1
        self._close(ArbitrationState.SYNC_SLOT_FILLED, value)

    # ─── Helpers ──────────────────────────────────────────

    def _result(self) -> DispatchResult:
        content = self._slot.result() if self._slot.done() else self._slot
        return DispatchResult(status=200, content=content)

    @property
    def timer_active(self) -> bool:
        return self._timer is not None
