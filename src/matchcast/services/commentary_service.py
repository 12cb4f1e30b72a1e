"""Commentary service: time-stamped lines attached to a match."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from matchcast.db.models import Commentary

MAX_LIMIT = 100


class CommentaryService:
    """Business logic for match commentary."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_commentary(self, match_id: int, limit: int = 10) -> list[Commentary]:
        """Newest first, capped at MAX_LIMIT rows."""
        result = await self.db.execute(
            select(Commentary)
            .where(Commentary.match_id == match_id)
            .order_by(Commentary.created_at.desc(), Commentary.id.desc())
            .limit(min(limit, MAX_LIMIT))
        )
        return list(result.scalars().all())

    async def add_commentary(
        self,
        match_id: int,
        minute: int,
        message: str,
        sequence: Optional[int] = None,
        period: Optional[str] = None,
        event_type: Optional[str] = None,
        actor: Optional[str] = None,
        team: Optional[str] = None,
        metadata: Optional[dict] = None,
        tags: Optional[list[str]] = None,
    ) -> Commentary:
        entry = Commentary(
            match_id=match_id,
            minute=minute,
            message=message,
            sequence=sequence,
            period=period,
            event_type=event_type,
            actor=actor,
            team=team,
            meta=metadata,
            tags=tags,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry
