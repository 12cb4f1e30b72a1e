"""Realtime diagnostics: what the broadcast hub currently holds."""

from fastapi import APIRouter

from matchcast.realtime.hub import BroadcastHub


def build_router(hub: BroadcastHub) -> APIRouter:
    router = APIRouter()

    @router.get("/realtime/stats")
    async def realtime_stats():
        """Live connection counts by state and subscribers per topic."""
        return hub.stats()

    return router
