"""Health check endpoint.

Learn: simple GET that reports the version, how many handlers are
registered and the adapter's dispatch counters.
"""

from fastapi import APIRouter, Depends

from interactive_messages import __version__
from interactive_messages.adapter import MessageAdapter
from interactive_messages.api.interactions import get_adapter

router = APIRouter()


@router.get("/health")
async def health_check(adapter: MessageAdapter = Depends(get_adapter)):
    """Server status plus dispatch statistics."""
    stats = adapter.get_stats()
    return {"status": "ok", "version": __version__, **stats}
