"""Commentary API routes: nested under a match."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from matchcast.db.engine import get_db
from matchcast.realtime.hub import BroadcastHub
from matchcast.schemas.commentary import CommentaryCreate, CommentaryRead
from matchcast.services.commentary_service import MAX_LIMIT, CommentaryService
from matchcast.services.match_service import MatchService


def _svc(db: AsyncSession = Depends(get_db)) -> CommentaryService:
    return CommentaryService(db)


def build_router(hub: BroadcastHub) -> APIRouter:
    router = APIRouter()

    @router.get("/matches/{match_id}/commentary", response_model=list[CommentaryRead])
    async def list_commentary(
        match_id: int = Path(..., gt=0),
        limit: int = Query(10, ge=1, le=MAX_LIMIT),
        svc: CommentaryService = Depends(_svc),
    ):
        return await svc.list_commentary(match_id, limit=limit)

    @router.post(
        "/matches/{match_id}/commentary",
        response_model=CommentaryRead,
        status_code=201,
    )
    async def create_commentary(
        body: CommentaryCreate,
        match_id: int = Path(..., gt=0),
        svc: CommentaryService = Depends(_svc),
    ):
        """Add a commentary line and push it to the match's subscribers."""
        if not await MatchService(svc.db).get_match(match_id):
            raise HTTPException(status_code=404, detail="Match not found")

        entry = await svc.add_commentary(
            match_id=match_id,
            minute=body.minute,
            message=body.message,
            sequence=body.sequence,
            period=body.period,
            event_type=body.event_type,
            actor=body.actor,
            team=body.team,
            metadata=body.metadata,
            tags=body.tags,
        )
        await svc.db.commit()

        created = CommentaryRead.model_validate(entry)
        hub.publish_commentary_created(
            match_id, created.model_dump(mode="json", by_alias=True)
        )
        return created

    return router
