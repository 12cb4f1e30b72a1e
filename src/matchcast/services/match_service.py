"""Match service: queries and writes for matches.

Routes call services, services call the database. Services flush but
never commit; the route commits once the whole write succeeded, then
hands the result to the broadcast hub.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from matchcast.db.models import Match


def match_status(start_time: datetime, end_time: datetime, now: Optional[datetime] = None) -> str:
    """Derive scheduled/live/finished from the fixture window."""
    now = now or datetime.now(timezone.utc)
    if now < start_time:
        return "scheduled"
    if now >= end_time:
        return "finished"
    return "live"


class MatchService:
    """Business logic for matches."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_matches(self, limit: int = 50) -> list[Match]:
        result = await self.db.execute(
            select(Match).order_by(Match.created_at.desc(), Match.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_match(self, match_id: int) -> Optional[Match]:
        return await self.db.get(Match, match_id)

    async def create_match(
        self,
        sport: str,
        home_team: str,
        away_team: str,
        start_time: datetime,
        end_time: datetime,
        home_score: Optional[int] = None,
        away_score: Optional[int] = None,
    ) -> Match:
        match = Match(
            sport=sport,
            home_team=home_team,
            away_team=away_team,
            start_time=start_time,
            end_time=end_time,
            home_score=home_score or 0,
            away_score=away_score or 0,
            status=match_status(start_time, end_time),
        )
        self.db.add(match)
        await self.db.flush()
        return match

    async def update_score(
        self, match_id: int, home_score: int, away_score: int
    ) -> Optional[Match]:
        match = await self.get_match(match_id)
        if not match:
            return None
        match.home_score = home_score
        match.away_score = away_score
        await self.db.flush()
        return match
