"""Pydantic schemas for match commentary."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from matchcast.schemas.match import CamelModel


class CommentaryCreate(CamelModel):
    minute: int = Field(..., ge=0, le=200)
    sequence: Optional[int] = Field(default=None, ge=0)
    period: Optional[str] = Field(default=None, max_length=20)
    event_type: Optional[str] = Field(default=None, max_length=50)
    actor: Optional[str] = Field(default=None, max_length=100)
    team: Optional[str] = Field(default=None, max_length=100)
    message: str = Field(..., min_length=1)
    metadata: Optional[dict] = None
    tags: Optional[list[str]] = None


class CommentaryRead(CamelModel):
    id: int
    match_id: int
    minute: int
    sequence: Optional[int] = None
    period: Optional[str] = None
    event_type: Optional[str] = None
    actor: Optional[str] = None
    team: Optional[str] = None
    message: str
    metadata: Optional[dict] = Field(default=None, validation_alias="meta")
    tags: Optional[list[str]] = None
    created_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )
