"""Wire protocol for the /ws endpoint.

Inbound (client → hub):
    {"action": "subscribe" | "unsubscribe", "topic": "<matchId|global>"}
    {"action": "ping"}

Outbound (hub → client):
    {"type": "match.created" | "commentary.created",
     "topic": "...", "data": {...}, "ts": "<ISO timestamp>"}
plus control frames: welcome, subscribed, unsubscribed, pong, error.

The hub never looks inside `data`; payloads are validated upstream.
"""

import json
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator

from matchcast.events.types import EVENT_TYPES


class InvalidMessage(ValueError):
    """Raised when an inbound frame doesn't match the protocol."""


MAX_TOPIC_LENGTH = 64


def normalize_topic(topic: Union[str, int]) -> str:
    """Match ids arrive as ints from HTTP and as strings from clients."""
    if isinstance(topic, bool):
        raise InvalidMessage("topic must be a string or integer")
    if isinstance(topic, int):
        topic = str(topic)
    if not isinstance(topic, str) or not topic.strip():
        raise InvalidMessage("topic must be a non-empty string or integer")
    topic = topic.strip()
    if len(topic) > MAX_TOPIC_LENGTH:
        raise InvalidMessage(f"topic must be at most {MAX_TOPIC_LENGTH} characters")
    return topic


# ─── Outbound ─────────────────────────────────────────────


class EventEnvelope(BaseModel):
    """Wire wrapper around a domain event."""

    type: str
    topic: str
    data: Any
    ts: datetime

    @field_validator("type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        if value not in EVENT_TYPES:
            raise ValueError(f"unknown event type {value!r}")
        return value

    @classmethod
    def build(cls, topic: Union[str, int], event_type: str, payload: Any) -> "EventEnvelope":
        return cls(
            type=event_type,
            topic=normalize_topic(topic),
            data=payload,
            ts=datetime.now(timezone.utc),
        )

    def to_frame(self) -> str:
        return self.model_dump_json()


def control_frame(frame_type: str, **fields: Any) -> str:
    return json.dumps({"type": frame_type, **fields}, default=str)


def error_frame(code: str, message: str) -> str:
    return control_frame("error", code=code, message=message)


# ─── Inbound ──────────────────────────────────────────────


class ClientMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: Literal["subscribe", "unsubscribe", "ping"]
    topic: Optional[Union[StrictInt, str]] = Field(default=None)


def parse_client_message(raw: str) -> ClientMessage:
    """Decode and validate one inbound text frame.

    Raises InvalidMessage for bad JSON, wrong shape, unknown actions,
    or a subscribe/unsubscribe without a usable topic.
    """
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidMessage("message is not valid JSON")
    if not isinstance(decoded, dict):
        raise InvalidMessage("message must be a JSON object")

    try:
        message = ClientMessage.model_validate(decoded)
    except ValidationError as e:
        if any(err["loc"] == ("action",) for err in e.errors()):
            raise InvalidMessage(f"unknown action {decoded.get('action')!r}")
        raise InvalidMessage("topic must be a non-empty string or integer")

    if message.action != "ping":
        if message.topic is None:
            raise InvalidMessage(f"{message.action} requires a topic")
        message.topic = normalize_topic(message.topic)
    return message
