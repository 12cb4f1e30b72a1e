"""API route aggregation.

Every router is built around the one BroadcastHub created at startup;
build_api_router() is called from create_app() with that hub.
"""

from fastapi import APIRouter

from matchcast.api import commentary, health, matches, realtime
from matchcast.realtime.hub import BroadcastHub


def build_api_router(hub: BroadcastHub) -> APIRouter:
    api_router = APIRouter(prefix="/api/v1")
    api_router.include_router(health.build_router(hub), tags=["health"])
    api_router.include_router(matches.build_router(hub), tags=["matches"])
    api_router.include_router(commentary.build_router(hub), tags=["commentary"])
    api_router.include_router(realtime.build_router(hub), tags=["realtime"])
    return api_router
