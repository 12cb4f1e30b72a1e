"""Subscription index: topic ↔ connection-id relation.

Both directions are kept here so they can never diverge: the set of
topics recorded for a connection is exactly the set of topics whose
subscriber set contains that connection. A topic exists only while it
has at least one subscriber.

All methods are synchronous with no await points, so on the event loop
every mutation is atomic relative to publish and disconnect.
"""

from typing import Iterable


class SubscriptionIndex:
    def __init__(self):
        self._subscribers: dict[str, set[str]] = {}
        self._topics: dict[str, set[str]] = {}

    def subscribe(self, connection_id: str, topic: str) -> bool:
        """Record interest. Returns False if it was already recorded."""
        subscribers = self._subscribers.setdefault(topic, set())
        if connection_id in subscribers:
            return False
        subscribers.add(connection_id)
        self._topics.setdefault(connection_id, set()).add(topic)
        return True

    def unsubscribe(self, connection_id: str, topic: str) -> bool:
        """Drop interest. Returns False if there was none to drop."""
        subscribers = self._subscribers.get(topic)
        if not subscribers or connection_id not in subscribers:
            return False
        subscribers.discard(connection_id)
        if not subscribers:
            del self._subscribers[topic]

        topics = self._topics.get(connection_id)
        if topics is not None:
            topics.discard(topic)
            if not topics:
                del self._topics[connection_id]
        return True

    def unsubscribe_all(self, connection_id: str) -> frozenset[str]:
        """Remove a connection from every topic. Returns the topics it had."""
        topics = self._topics.pop(connection_id, set())
        for topic in topics:
            subscribers = self._subscribers.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(connection_id)
            if not subscribers:
                del self._subscribers[topic]
        return frozenset(topics)

    def subscribers_of(self, topic: str) -> frozenset[str]:
        # Snapshot: callers may mutate the index while iterating the result.
        return frozenset(self._subscribers.get(topic, ()))

    def topics_of(self, connection_id: str) -> frozenset[str]:
        return frozenset(self._topics.get(connection_id, ()))

    def topics(self) -> Iterable[str]:
        return list(self._subscribers)

    def counts(self) -> dict[str, int]:
        """Subscriber count per topic."""
        return {topic: len(ids) for topic, ids in self._subscribers.items()}

    def __contains__(self, topic: object) -> bool:
        return topic in self._subscribers
