"""Dispatch result returned to the transport layer."""

import inspect
from dataclasses import dataclass
from typing import Any


@dataclass
class DispatchResult:
    """Status + content of the synchronous answer.

    `content` is either the final value or an awaitable that settles when a
    handler delivers or the response budget runs out, whichever is first.
    """
    status: int = 200
    content: Any = None

    @property
    def is_deferred(self) -> bool:
        return inspect.isawaitable(self.content)

    async def resolve(self) -> Any:
        """Wait for the synchronous content (no-op if already known)."""
        if self.is_deferred:
            return await self.content
        return self.content
