"""API route aggregation.

All routers registered here get mounted in main.py. The interaction
receiver is open: requests authenticate with their signature, not with
app-level auth.
"""

from fastapi import APIRouter

from interactive_messages.api.health import router as health_router
from interactive_messages.api.interactions import build_router


def build_api_router(actions_path: str = "/slack/actions") -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(build_router(actions_path), tags=["interactions"])
    return api_router
