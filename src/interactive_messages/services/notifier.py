"""Webhook notifier — fire-and-forget POSTs to a payload's response_url.

Learn: by the time the notifier runs, the original request has already
been answered, so there is nobody to report a failure to. Network errors
and non-2xx responses are logged and dropped; nothing is retried.

Each send runs as its own asyncio task. Tasks are started in the order
notify() is called, but may finish in any order. The notifier holds a
strong reference to every in-flight task (the event loop only keeps weak
ones) and join() / aclose() wait for them.
"""

import asyncio
from typing import Any, Optional

import httpx
import structlog

from interactive_messages.identity import package_identifier

logger = structlog.get_logger()


class WebhookNotifier:
    def __init__(
        self,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, transport=transport)
        self._pending: set[asyncio.Task] = set()
        self.sent = 0
        self.failed = 0

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def notify(self, url: str, content: Any) -> asyncio.Task:
        """Start a POST of `content` as JSON to `url`. Returns the send task."""
        task = asyncio.create_task(self._post(url, content))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _post(self, url: str, content: Any) -> Optional[httpx.Response]:
        log = logger.bind(url=url)
        try:
            resp = await self._client.post(
                url,
                json=content,
                headers={"User-Agent": package_identifier()},
            )
        except httpx.HTTPError as e:
            self.failed += 1
            log.warning("notifier.failed", error=str(e))
            return None
        except Exception:
            # e.g. content that is not JSON serializable
            self.failed += 1
            log.exception("notifier.error")
            return None

        if resp.is_success:
            self.sent += 1
            log.debug("notifier.delivered", status=resp.status_code)
        else:
            self.failed += 1
            log.warning("notifier.rejected", status=resp.status_code)
        return resp

    async def join(self) -> None:
        """Wait for every in-flight delivery, including ones started meanwhile."""
        while self._pending:
            await asyncio.gather(*tuple(self._pending))

    async def aclose(self) -> None:
        """Drain pending deliveries, then close the HTTP client if we own it."""
        await self.join()
        if self._owns_client:
            await self._client.aclose()
