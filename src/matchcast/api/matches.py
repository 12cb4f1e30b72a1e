"""Match API routes.

Route functions receive the service via Depends() and handle HTTP
concerns; the service handles the queries. A successful create is
committed first and only then handed to the broadcast hub, so a push
never runs for a write that didn't land.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from matchcast.db.engine import get_db
from matchcast.realtime.hub import BroadcastHub
from matchcast.schemas.match import MatchCreate, MatchRead, ScoreUpdate
from matchcast.services.match_service import MatchService


def _svc(db: AsyncSession = Depends(get_db)) -> MatchService:
    return MatchService(db)


def build_router(hub: BroadcastHub) -> APIRouter:
    router = APIRouter()

    @router.get("/matches", response_model=list[MatchRead])
    async def list_matches(
        limit: int = Query(50, ge=1, le=100),
        svc: MatchService = Depends(_svc),
    ):
        return await svc.list_matches(limit=limit)

    @router.post("/matches", response_model=MatchRead, status_code=201)
    async def create_match(body: MatchCreate, svc: MatchService = Depends(_svc)):
        """Create a match and announce it on the global topic."""
        match = await svc.create_match(
            sport=body.sport,
            home_team=body.home_team,
            away_team=body.away_team,
            start_time=body.start_time,
            end_time=body.end_time,
            home_score=body.home_score,
            away_score=body.away_score,
        )
        await svc.db.commit()

        created = MatchRead.model_validate(match)
        hub.publish_match_created(created.model_dump(mode="json", by_alias=True))
        return created

    @router.patch("/matches/{match_id}/score", response_model=MatchRead)
    async def update_score(
        body: ScoreUpdate,
        match_id: int = Path(..., gt=0),
        svc: MatchService = Depends(_svc),
    ):
        match = await svc.update_score(match_id, body.home_score, body.away_score)
        if not match:
            raise HTTPException(status_code=404, detail="Match not found")
        await svc.db.commit()
        return match

    return router
