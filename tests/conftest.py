"""Test fixtures: a fresh hub and a throwaway SQLite database per test.

Pattern:
1. `hub` is a new BroadcastHub, injected into the app via create_app(hub=...)
2. `db_engine` points at a per-test SQLite file with the schema created
3. `client` is an httpx AsyncClient over ASGITransport with get_db overridden

Hub unit tests don't need any of the HTTP machinery: they register
FakeTransport objects and read frames straight out of the outbox.
"""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from matchcast.db.engine import get_db
from matchcast.db.models import Base
from matchcast.main import create_app
from matchcast.realtime.gate import allow_all
from matchcast.realtime.hub import BroadcastHub


class FakeTransport:
    """Stands in for a WebSocket: records sent frames, can be told to fail."""

    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.fail = fail
        self.closed_with = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason=None) -> None:
        self.closed_with = (code, reason)


@pytest.fixture()
def transport_factory():
    return FakeTransport


@pytest.fixture()
def hub():
    return BroadcastHub(outbox_size=8)


@pytest.fixture()
def connect(hub):
    """Register a fake observer and return its connection id."""

    def _connect(fail: bool = False) -> str:
        return hub.connect(FakeTransport(fail=fail))

    return _connect


@pytest.fixture()
def drain(hub):
    """Pop every queued frame for a connection, decoded."""

    def _drain(connection_id: str) -> list[dict]:
        conn = hub.registry.get(connection_id)
        frames = []
        while conn is not None and not conn.outbox.empty():
            frames.append(json.loads(conn.outbox.get_nowait()))
        return frames

    return _drain


@pytest_asyncio.fixture()
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'matchcast-test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def client(hub, db_engine):
    """HTTP client bound to an app built around the test hub."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    app = create_app(hub=hub, gate=allow_all)
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def match_body():
    return {
        "sport": "football",
        "homeTeam": "Rovers",
        "awayTeam": "United",
        "startTime": "2030-05-01T18:00:00Z",
        "endTime": "2030-05-01T20:00:00Z",
    }


@pytest_asyncio.fixture()
async def match(client, match_body):
    """Create a match through the API and return its JSON."""
    resp = await client.post("/api/v1/matches", json=match_body)
    assert resp.status_code == 201
    return resp.json()
