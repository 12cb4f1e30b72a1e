"""Connection registry: owns every live observer connection.

Each Connection holds its transport handle exclusively, plus the bounded
outbox its writer task drains. Lookups by id are O(1); fan-out never
walks the registry (it goes through the SubscriptionIndex instead).
"""

import asyncio
import enum
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Protocol

import structlog

logger = structlog.get_logger()


class Transport(Protocol):
    """What the hub needs from a socket. Starlette's WebSocket fits."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    id: str
    transport: Any
    outbox: asyncio.Queue
    state: ConnectionState = ConnectionState.CONNECTING
    last_activity: float = field(default_factory=time.monotonic)
    closed: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def touch(self) -> None:
        self.last_activity = time.monotonic()


class ConnectionRegistry:
    """Tracks connections by id and drives their lifecycle state."""

    def __init__(self, outbox_size: int = 64):
        self.outbox_size = outbox_size
        self._connections: dict[str, Connection] = {}

    def register(self, transport: Any) -> str:
        """Track a newly admitted transport and return its fresh id."""
        conn = Connection(
            id=uuid.uuid4().hex,
            transport=transport,
            outbox=asyncio.Queue(maxsize=self.outbox_size),
        )
        conn.state = ConnectionState.OPEN
        self._connections[conn.id] = conn
        logger.info("matchcast.ws.registered", connection_id=conn.id)
        return conn.id

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def mark_closing(self, connection_id: str) -> bool:
        """Move an Open connection to Closing. Returns False if it isn't Open."""
        conn = self._connections.get(connection_id)
        if conn is None or conn.state is not ConnectionState.OPEN:
            return False
        conn.state = ConnectionState.CLOSING
        return True

    def remove(self, connection_id: str) -> Optional[Connection]:
        """Close and forget a connection. Returns None if it was already gone."""
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return None
        conn.state = ConnectionState.CLOSED
        conn.closed.set()
        return conn

    def for_each(self, visitor: Callable[[Connection], None]) -> None:
        """Visit every live connection (diagnostics only)."""
        for conn in list(self._connections.values()):
            visitor(conn)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections
