"""BroadcastHub tests: subscribe/publish/prune behaviour.

Pattern: register FakeTransport observers through the `connect` fixture,
publish, then read what landed in each outbox with `drain`.
"""

import asyncio
import json

import pytest

from matchcast.events.types import COMMENTARY_CREATED, MATCH_CREATED
from matchcast.realtime.hub import BroadcastHub, ConnectionNotFound, TopicLimitExceeded
from matchcast.realtime.registry import ConnectionState


# ═══════════════════════════════════════════════════════════
# Subscribe / publish
# ═══════════════════════════════════════════════════════════


def test_publish_reaches_subscriber_exactly_once(hub, connect, drain):
    c = connect()
    hub.subscribe(c, "42")

    assert hub.subscribers_of("42") == {c}
    assert hub.publish("42", COMMENTARY_CREATED, {"minute": 1}) == 1

    frames = drain(c)
    assert len(frames) == 1
    assert frames[0]["type"] == COMMENTARY_CREATED
    assert frames[0]["topic"] == "42"
    assert frames[0]["data"] == {"minute": 1}
    assert "ts" in frames[0]


def test_subscribe_twice_still_delivers_once(hub, connect, drain):
    c = connect()
    hub.subscribe(c, "42")
    hub.subscribe(c, 42)
    hub.publish(42, COMMENTARY_CREATED, {})
    assert len(drain(c)) == 1


def test_unsubscribe_stops_delivery(hub, connect, drain):
    c = connect()
    hub.subscribe(c, "42")
    hub.unsubscribe(c, "42")

    assert hub.publish("42", COMMENTARY_CREATED, {}) == 0
    assert drain(c) == []
    assert "42" not in hub.index


def test_publish_without_subscribers_is_noop(hub):
    assert hub.publish("999", COMMENTARY_CREATED, {"x": 1}) == 0
    assert hub.stats()["topics"] == {}


def test_topics_are_isolated(hub, connect, drain):
    a, b = connect(), connect()
    hub.subscribe(a, "1")
    hub.subscribe(b, "2")

    hub.publish("1", COMMENTARY_CREATED, {"n": 1})

    assert len(drain(a)) == 1
    assert drain(b) == []


def test_payload_passes_through_untouched(hub, connect, drain):
    c = connect()
    hub.subscribe(c, "global")
    payload = {"id": 7, "nested": {"list": [1, 2, 3]}, "homeTeam": "Rovers"}

    hub.publish_match_created(payload)

    assert drain(c)[0]["data"] == payload
    assert payload == {"id": 7, "nested": {"list": [1, 2, 3]}, "homeTeam": "Rovers"}


def test_match_and_commentary_routing_scenario(hub, connect, drain):
    """A watches match 42, B watches the global feed."""
    a, b = connect(), connect()
    hub.subscribe(a, "42")
    hub.subscribe(b, "global")

    hub.publish_match_created({"id": 7, "sport": "football"})
    hub.publish_commentary_created(42, {"minute": 10, "text": "Goal"})

    a_frames, b_frames = drain(a), drain(b)
    assert [f["type"] for f in a_frames] == [COMMENTARY_CREATED]
    assert a_frames[0]["data"] == {"minute": 10, "text": "Goal"}
    assert [f["type"] for f in b_frames] == [MATCH_CREATED]
    assert b_frames[0]["topic"] == "global"
    assert b_frames[0]["data"]["id"] == 7


def test_unknown_event_type_is_rejected(hub):
    with pytest.raises(ValueError):
        hub.publish("42", "score.updated", {})


@pytest.mark.parametrize("subscribed", [False, True])
def test_unserializable_payload_is_dropped_not_raised(hub, connect, drain, subscribed):
    """The write behind a publish is already committed; a bad payload
    must not turn it into an error, with or without subscribers."""
    c = connect()
    if subscribed:
        hub.subscribe(c, "42")

    assert hub.publish("42", COMMENTARY_CREATED, {"when": object()}) == 0

    assert drain(c) == []
    assert hub.registry.get(c) is not None


def test_subscriber_survives_a_bad_payload(hub, connect, drain):
    c = connect()
    hub.subscribe(c, "42")
    hub.publish("42", COMMENTARY_CREATED, object())

    assert hub.publish("42", COMMENTARY_CREATED, {"minute": 2}) == 1
    assert drain(c)[0]["data"] == {"minute": 2}


def test_topic_cap_per_connection(transport_factory):
    hub = BroadcastHub(max_topics=2)
    c = hub.connect(transport_factory())
    hub.subscribe(c, "1")
    hub.subscribe(c, "2")

    with pytest.raises(TopicLimitExceeded):
        hub.subscribe(c, "3")

    # Re-subscribing to a held topic is still fine
    assert hub.subscribe(c, "2") == "2"
    assert hub.topics_of(c) == {"1", "2"}
    assert "3" not in hub.index

    hub.unsubscribe(c, "1")
    assert hub.subscribe(c, "3") == "3"


# ═══════════════════════════════════════════════════════════
# Unknown / closed connections
# ═══════════════════════════════════════════════════════════


def test_subscribe_unknown_connection_raises(hub):
    with pytest.raises(ConnectionNotFound):
        hub.subscribe("ghost", "42")
    assert "42" not in hub.index


def test_subscribe_while_closing_raises(hub, connect):
    c = connect()
    hub.begin_close(c)
    with pytest.raises(ConnectionNotFound):
        hub.subscribe(c, "42")
    with pytest.raises(ConnectionNotFound):
        hub.unsubscribe(c, "42")


def test_close_removes_every_subscription(hub, connect):
    c = connect()
    hub.subscribe(c, "42")
    hub.subscribe(c, "global")

    assert hub.on_connection_closed(c) is True

    assert hub.registry.get(c) is None
    assert hub.subscribers_of("42") == frozenset()
    assert hub.stats()["topics"] == {}


def test_close_is_idempotent(hub, connect):
    c = connect()
    assert hub.on_connection_closed(c) is True
    assert hub.on_connection_closed(c) is False


def test_publish_after_disconnect_skips_closed_connection(hub, connect, drain):
    a, b = connect(), connect()
    hub.subscribe(a, "42")
    hub.subscribe(b, "42")
    hub.on_connection_closed(a)

    assert hub.publish_commentary_created(42, {"minute": 3}) == 1
    assert len(drain(b)) == 1


def test_closing_subscriber_is_pruned_on_publish(hub, connect, drain):
    a, b = connect(), connect()
    hub.subscribe(a, "42")
    hub.subscribe(b, "42")
    hub.begin_close(a)

    assert hub.publish("42", COMMENTARY_CREATED, {}) == 1
    assert hub.registry.get(a) is None
    assert hub.subscribers_of("42") == {b}


# ═══════════════════════════════════════════════════════════
# Backpressure
# ═══════════════════════════════════════════════════════════


def test_full_outbox_drops_slow_consumer_only(transport_factory):
    hub = BroadcastHub(outbox_size=2)
    slow = hub.connect(transport_factory())
    fast = hub.connect(transport_factory())
    hub.subscribe(slow, "42")
    hub.subscribe(fast, "42")

    hub.publish("42", COMMENTARY_CREATED, {"n": 1})
    hub.publish("42", COMMENTARY_CREATED, {"n": 2})
    # Drain the fast one so only the slow one overflows
    fast_conn = hub.registry.get(fast)
    while not fast_conn.outbox.empty():
        fast_conn.outbox.get_nowait()

    delivered = hub.publish("42", COMMENTARY_CREATED, {"n": 3})

    assert delivered == 1
    assert hub.registry.get(slow) is None
    assert hub.subscribers_of("42") == {fast}


def test_pruned_connection_is_signalled_closed(transport_factory):
    hub = BroadcastHub(outbox_size=1)
    c = hub.connect(transport_factory())
    conn = hub.registry.get(c)
    hub.subscribe(c, "42")

    hub.publish("42", COMMENTARY_CREATED, {})
    hub.publish("42", COMMENTARY_CREATED, {})

    assert conn.state is ConnectionState.CLOSED
    assert conn.closed.is_set()


# ═══════════════════════════════════════════════════════════
# Writer task
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_writer_drains_outbox_into_transport(hub, transport_factory):
    transport = transport_factory()
    c = hub.connect(transport)
    hub.subscribe(c, "42")
    writer = asyncio.create_task(hub.run_writer(c))

    hub.publish("42", COMMENTARY_CREATED, {"minute": 5})
    for _ in range(10):
        if transport.sent:
            break
        await asyncio.sleep(0)

    writer.cancel()
    assert json.loads(transport.sent[0])["data"] == {"minute": 5}


@pytest.mark.asyncio
async def test_writer_send_failure_prunes_connection(hub, transport_factory):
    broken = transport_factory(fail=True)
    c = hub.connect(broken)
    hub.subscribe(c, "42")
    writer = asyncio.create_task(hub.run_writer(c))

    hub.publish("42", COMMENTARY_CREATED, {})
    await asyncio.wait_for(writer, timeout=1)

    assert hub.registry.get(c) is None
    assert "42" not in hub.index
    # Later publishes to the topic are quiet no-ops
    assert hub.publish("42", COMMENTARY_CREATED, {}) == 0


# ═══════════════════════════════════════════════════════════
# Housekeeping
# ═══════════════════════════════════════════════════════════


def test_quiet_subscriber_keeps_receiving_by_default(hub, connect, drain):
    """Listening without sending is normal; no idle timeout is set."""
    c = connect()
    hub.subscribe(c, "42")
    hub.registry.get(c).last_activity -= 3600

    assert hub.sweep_idle() == []
    assert hub.publish_commentary_created(42, {"minute": 90}) == 1
    assert drain(c)[0]["data"] == {"minute": 90}


def test_sweep_uses_configured_idle_timeout(transport_factory):
    hub = BroadcastHub(idle_timeout=90)
    stale = hub.connect(transport_factory())
    hub.registry.get(stale).last_activity -= 95

    assert hub.sweep_idle() == [stale]
    assert hub.registry.get(stale) is None


def test_sweep_idle_prunes_stale_connections(hub, connect):
    stale, fresh = connect(), connect()
    hub.subscribe(stale, "42")
    hub.registry.get(stale).last_activity -= 120

    pruned = hub.sweep_idle(max_idle=90)

    assert pruned == [stale]
    assert hub.registry.get(fresh) is not None
    assert "42" not in hub.index


def test_stats_counts_connections_and_topics(hub, connect):
    a, b = connect(), connect()
    hub.subscribe(a, "42")
    hub.subscribe(b, "42")
    hub.subscribe(b, "global")
    hub.begin_close(a)

    stats = hub.stats()
    assert stats["connections"] == 2
    assert stats["by_state"] == {"open": 1, "closing": 1}
    assert stats["topics"] == {"42": 2, "global": 1}


@pytest.mark.asyncio
async def test_close_all_closes_transports(hub, transport_factory):
    transports = [transport_factory(), transport_factory()]
    ids = [hub.connect(t) for t in transports]
    hub.subscribe(ids[0], "42")

    await hub.close_all()

    assert len(hub.registry) == 0
    assert all(t.closed_with == (1001, "server shutdown") for t in transports)
    assert hub.stats()["topics"] == {}
