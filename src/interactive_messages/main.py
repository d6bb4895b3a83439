"""FastAPI application factory.

Learn: create_app() wraps a MessageAdapter in a ready-to-serve FastAPI
instance. The adapter lives on app.state so route dependencies can reach
it; the lifespan drains pending webhook deliveries and closes the HTTP
client on shutdown.

    adapter = create_message_adapter(os.environ["SIGNING_SECRET"])
    adapter.action("approve_request", on_approve)
    app = create_app(adapter)   # uvicorn myapp:app
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from interactive_messages import __version__
from interactive_messages.adapter import MessageAdapter
from interactive_messages.api import build_api_router
from interactive_messages.config import settings

logger = structlog.get_logger()


def create_app(
    adapter: MessageAdapter,
    *,
    actions_path: Optional[str] = None,
    allow_unsigned: Optional[bool] = None,
) -> FastAPI:
    """Build and return the FastAPI application serving `adapter`.

    Without a signing secret every request would be accepted unverified;
    that is only allowed in development (or with allow_unsigned=True).
    """
    if allow_unsigned is None:
        allow_unsigned = settings.is_development
    if not adapter.signing_secret and not allow_unsigned:
        raise ValueError(
            "A signing secret is required outside development. Set "
            "INTERACTIVE_MESSAGES_SIGNING_SECRET or pass it to "
            "create_message_adapter()."
        )
    path = actions_path or settings.actions_path

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "interactive_messages.starting",
            version=__version__,
            environment=settings.environment,
            actions_path=path,
            handlers=len(adapter.registry),
            signed=bool(adapter.signing_secret),
        )
        yield
        logger.info("interactive_messages.shutdown", stats=adapter.get_stats())
        await adapter.aclose()

    app = FastAPI(
        title="Interactive Messages",
        description="Routes interactive message callbacks to registered handlers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.adapter = adapter

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → PoweredBy → handler
    from interactive_messages.middleware.identification import PoweredByMiddleware
    from interactive_messages.middleware.request_id import RequestIdMiddleware

    app.add_middleware(PoweredByMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(build_api_router(path))
    return app
