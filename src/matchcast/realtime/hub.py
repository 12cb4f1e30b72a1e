"""Broadcast hub: turns one HTTP write into a push to every observer.

The hub composes the ConnectionRegistry (who is connected) and the
SubscriptionIndex (who cares about which topic). It is built once at
startup and handed to the HTTP routers and the WebSocket endpoint.

Delivery is best-effort:
- publish() serializes the envelope once and enqueues it per subscriber
  with put_nowait, so the publisher never waits on a socket.
- A subscriber whose outbox is full, or which is no longer Open, is
  pruned during the publish call.
- A writer task per connection (run_writer) drains the outbox; a failed
  send closes that connection through on_connection_closed.
"""

import asyncio
import time
from typing import Any, Optional, Union

import structlog

from matchcast.events.types import COMMENTARY_CREATED, GLOBAL_TOPIC, MATCH_CREATED
from matchcast.realtime.protocol import EventEnvelope, normalize_topic
from matchcast.realtime.registry import Connection, ConnectionRegistry, ConnectionState
from matchcast.realtime.subscriptions import SubscriptionIndex

logger = structlog.get_logger()


class HubError(Exception):
    """Base class for errors reported by the hub to its callers."""


class ConnectionNotFound(HubError):
    """The connection id is unknown or no longer Open."""

    def __init__(self, connection_id: str):
        super().__init__(f"connection {connection_id} not found")
        self.connection_id = connection_id


class TopicLimitExceeded(HubError):
    """The connection already holds as many topics as it may."""

    def __init__(self, connection_id: str, limit: int):
        super().__init__(f"a connection may hold at most {limit} topics")
        self.connection_id = connection_id
        self.limit = limit


class BroadcastHub:
    """Topic-keyed fan-out to live WebSocket observers."""

    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        index: Optional[SubscriptionIndex] = None,
        outbox_size: int = 64,
        max_topics: int = 100,
        idle_timeout: Optional[float] = None,
    ):
        self.registry = registry or ConnectionRegistry(outbox_size=outbox_size)
        self.index = index or SubscriptionIndex()
        self.max_topics = max_topics
        # None disables the idle sweep; liveness is left to protocol pings.
        self.idle_timeout = idle_timeout

    # ─── Connection lifecycle ───────────────────────────

    def connect(self, transport: Any) -> str:
        """Register an admitted transport. Call only after the gate allowed it."""
        return self.registry.register(transport)

    def on_connection_closed(self, connection_id: str, reason: str = "closed") -> bool:
        """Tear down a connection. Idempotent; returns False if already gone."""
        conn = self.registry.remove(connection_id)
        if conn is None:
            return False
        topics = self.index.unsubscribe_all(connection_id)
        logger.info(
            "matchcast.ws.closed",
            connection_id=connection_id,
            reason=reason,
            topics=sorted(topics),
        )
        return True

    def begin_close(self, connection_id: str) -> bool:
        """Mark a connection Closing; inbound frames are ignored from here on."""
        return self.registry.mark_closing(connection_id)

    # ─── Subscriptions ──────────────────────────────────

    def _require_open(self, connection_id: str) -> Connection:
        conn = self.registry.get(connection_id)
        if conn is None or not conn.is_open:
            raise ConnectionNotFound(connection_id)
        return conn

    def subscribe(self, connection_id: str, topic: Union[str, int]) -> str:
        """Subscribe an Open connection to a topic. Returns the normalized topic.

        Raises ConnectionNotFound if the connection isn't Open, and
        TopicLimitExceeded if it already holds `max_topics` other topics.
        """
        self._require_open(connection_id)
        topic = normalize_topic(topic)
        held = self.index.topics_of(connection_id)
        if topic not in held and len(held) >= self.max_topics:
            raise TopicLimitExceeded(connection_id, self.max_topics)
        if self.index.subscribe(connection_id, topic):
            logger.debug("matchcast.ws.subscribed", connection_id=connection_id, topic=topic)
        return topic

    def unsubscribe(self, connection_id: str, topic: Union[str, int]) -> str:
        self._require_open(connection_id)
        topic = normalize_topic(topic)
        if self.index.unsubscribe(connection_id, topic):
            logger.debug("matchcast.ws.unsubscribed", connection_id=connection_id, topic=topic)
        return topic

    def topics_of(self, connection_id: str) -> frozenset[str]:
        return self.index.topics_of(connection_id)

    def subscribers_of(self, topic: Union[str, int]) -> frozenset[str]:
        return self.index.subscribers_of(normalize_topic(topic))

    # ─── Delivery ───────────────────────────────────────

    def send(self, connection_id: str, frame: str) -> bool:
        """Queue a frame for one connection without blocking.

        A connection that can't take the frame (gone, not Open, or its
        outbox is full) is pruned and False is returned.
        """
        conn = self.registry.get(connection_id)
        if conn is None:
            return False
        if not conn.is_open:
            self._prune(connection_id, "not_open")
            return False
        try:
            conn.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            self._prune(connection_id, "buffer_full")
            return False
        return True

    def publish(self, topic: Union[str, int], event_type: str, payload: Any) -> int:
        """Fan an event out to every subscriber of `topic`.

        Returns the number of connections the event was queued for.
        Never raises because of a subscriber's state or an unserializable
        payload: the write that triggered this has already been committed.
        """
        envelope = EventEnvelope.build(topic, event_type, payload)
        try:
            frame = envelope.to_frame()
        except Exception:
            logger.exception(
                "matchcast.hub.serialize_failed",
                topic=envelope.topic,
                type=event_type,
            )
            return 0

        subscribers = self.index.subscribers_of(envelope.topic)
        if not subscribers:
            return 0

        delivered = 0
        for connection_id in subscribers:
            try:
                if self.send(connection_id, frame):
                    delivered += 1
            except Exception:
                logger.exception(
                    "matchcast.hub.delivery_error",
                    connection_id=connection_id,
                    topic=envelope.topic,
                )
                self._prune(connection_id, "send_failed")

        logger.debug(
            "matchcast.hub.published",
            topic=envelope.topic,
            type=event_type,
            subscribers=len(subscribers),
            delivered=delivered,
        )
        return delivered

    def publish_match_created(self, match: Any) -> int:
        return self.publish(GLOBAL_TOPIC, MATCH_CREATED, match)

    def publish_commentary_created(self, match_id: Union[str, int], commentary: Any) -> int:
        return self.publish(match_id, COMMENTARY_CREATED, commentary)

    async def run_writer(self, connection_id: str) -> None:
        """Drain a connection's outbox into its transport until it closes.

        Runs as one task per connection. A send error prunes the
        connection; cancellation stops further sends.
        """
        conn = self.registry.get(connection_id)
        if conn is None:
            return
        while conn.state in (ConnectionState.OPEN, ConnectionState.CLOSING):
            frame = await conn.outbox.get()
            if conn.state is ConnectionState.CLOSED:
                return
            try:
                await conn.transport.send_text(frame)
            except Exception as e:
                logger.warning(
                    "matchcast.hub.send_failed",
                    connection_id=connection_id,
                    error=str(e),
                )
                self._prune(connection_id, "send_failed")
                return

    def _prune(self, connection_id: str, reason: str) -> None:
        if self.on_connection_closed(connection_id, reason=reason):
            logger.info("matchcast.hub.subscriber_pruned", connection_id=connection_id, reason=reason)

    # ─── Housekeeping ───────────────────────────────────

    def sweep_idle(
        self, max_idle: Optional[float] = None, now: Optional[float] = None
    ) -> list[str]:
        """Prune connections with no inbound traffic for `max_idle` seconds.

        `max_idle` defaults to the hub's idle_timeout. With neither set
        nothing is pruned: a subscriber that only listens stays subscribed.
        """
        max_idle = self.idle_timeout if max_idle is None else max_idle
        if max_idle is None:
            return []
        now = time.monotonic() if now is None else now
        stale: list[str] = []

        def visit(conn: Connection) -> None:
            if now - conn.last_activity > max_idle:
                stale.append(conn.id)

        self.registry.for_each(visit)
        for connection_id in stale:
            self._prune(connection_id, "idle")
        return stale

    async def run_sweeper(self, interval: float) -> None:
        """Background loop around sweep_idle (started from the app lifespan
        only when idle_timeout is set)."""
        while True:
            await asyncio.sleep(interval)
            pruned = self.sweep_idle()
            if pruned:
                logger.info("matchcast.hub.idle_swept", count=len(pruned))

    def stats(self) -> dict[str, Any]:
        """Connection and topic counts for diagnostics."""
        by_state: dict[str, int] = {}

        def visit(conn: Connection) -> None:
            by_state[conn.state.value] = by_state.get(conn.state.value, 0) + 1

        self.registry.for_each(visit)
        return {
            "connections": len(self.registry),
            "by_state": by_state,
            "topics": self.index.counts(),
        }

    async def close_all(self, code: int = 1001, reason: str = "server shutdown") -> None:
        """Close every live connection (app shutdown)."""
        for conn in self.registry:
            self.begin_close(conn.id)
            try:
                await conn.transport.close(code=code, reason=reason)
            except Exception as e:
                logger.debug("matchcast.hub.close_failed", connection_id=conn.id, error=str(e))
            self.on_connection_closed(conn.id, reason="shutdown")
