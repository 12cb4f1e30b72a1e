"""Pydantic schemas for matches.

Separate "Create" schemas (input) from "Read" schemas (output). The wire
format is camelCase; snake_case field names are accepted on input too.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MATCH_STATUSES = ("scheduled", "live", "finished")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MatchCreate(CamelModel):
    sport: str = Field(..., min_length=1, max_length=50)
    home_team: str = Field(..., min_length=1, max_length=100)
    away_team: str = Field(..., min_length=1, max_length=100)
    start_time: datetime
    end_time: datetime
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def _tz_aware(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class ScoreUpdate(CamelModel):
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)


class MatchRead(CamelModel):
    id: int
    sport: str
    home_team: str
    away_team: str
    status: str
    start_time: datetime
    end_time: datetime
    home_score: int
    away_score: int
    created_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )
