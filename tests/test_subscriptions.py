"""SubscriptionIndex tests: the topic ↔ connection relation on its own."""

from matchcast.realtime.subscriptions import SubscriptionIndex


def test_subscribe_records_both_directions():
    index = SubscriptionIndex()
    assert index.subscribe("c1", "42") is True
    assert index.subscribers_of("42") == {"c1"}
    assert index.topics_of("c1") == {"42"}


def test_subscribe_is_idempotent():
    index = SubscriptionIndex()
    index.subscribe("c1", "42")
    assert index.subscribe("c1", "42") is False
    assert index.counts() == {"42": 1}


def test_connection_can_hold_many_topics():
    index = SubscriptionIndex()
    index.subscribe("c1", "42")
    index.subscribe("c1", "global")
    assert index.topics_of("c1") == {"42", "global"}


def test_unsubscribe_drops_empty_topic():
    index = SubscriptionIndex()
    index.subscribe("c1", "42")
    assert index.unsubscribe("c1", "42") is True
    assert "42" not in index
    assert index.topics_of("c1") == frozenset()
    assert list(index.topics()) == []


def test_unsubscribe_unknown_is_noop():
    index = SubscriptionIndex()
    index.subscribe("c1", "42")
    assert index.unsubscribe("c2", "42") is False
    assert index.unsubscribe("c1", "7") is False
    assert index.subscribers_of("42") == {"c1"}


def test_unsubscribe_keeps_other_subscribers():
    index = SubscriptionIndex()
    index.subscribe("c1", "42")
    index.subscribe("c2", "42")
    index.unsubscribe("c1", "42")
    assert index.subscribers_of("42") == {"c2"}


def test_unsubscribe_all_removes_every_membership():
    index = SubscriptionIndex()
    index.subscribe("c1", "42")
    index.subscribe("c1", "global")
    index.subscribe("c2", "42")

    assert index.unsubscribe_all("c1") == {"42", "global"}
    assert index.subscribers_of("42") == {"c2"}
    assert "global" not in index
    assert index.unsubscribe_all("c1") == frozenset()


def test_subscribers_of_is_a_snapshot():
    """Mutating the index while iterating a previous result is safe."""
    index = SubscriptionIndex()
    for cid in ("c1", "c2", "c3"):
        index.subscribe(cid, "42")

    snapshot = index.subscribers_of("42")
    for cid in snapshot:
        index.unsubscribe_all(cid)

    assert snapshot == {"c1", "c2", "c3"}
    assert index.subscribers_of("42") == frozenset()
    assert index.counts() == {}
