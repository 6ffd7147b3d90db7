"""In-process fan-out of live updates to dashboard subscribers.

Delivery is best effort. Each subscriber owns a bounded queue and publish()
never waits on one: when a subscriber falls behind, updates for that
subscriber are dropped and it is expected to resync from a snapshot.
"""

import logging
import queue
import threading
from collections import defaultdict
from collections.abc import Iterator

from tickets.domain import EventId, LiveUpdate

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """One dashboard connection's view of an event's update stream."""

    def __init__(self, publisher: "LiveUpdatePublisher", event_id: EventId, queue_size: int) -> None:
        self.event_id = event_id
        self.dropped = 0
        self.closed = False
        self._close_requested = False
        self._publisher = publisher
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._dropped_lock = threading.Lock()

    def offer(self, update: LiveUpdate) -> bool:
        try:
            self._queue.put_nowait(update)
        except queue.Full:
            with self._dropped_lock:
                self.dropped += 1
            return False
        return True

    def get(self, timeout: float | None = None) -> LiveUpdate | None:
        """Wait up to ``timeout`` seconds for the next update; None if none arrived or closed."""
        if self.closed:
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self.closed = True
            return None
        return item

    def __iter__(self) -> Iterator[LiveUpdate]:
        while not self.closed:
            update = self.get()
            if update is not None:
                yield update

    def close(self) -> None:
        if self._close_requested:
            return
        self._close_requested = True
        self._publisher.unsubscribe(self)
        # Wake a reader blocked in get(); make room if the queue is full.
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LiveUpdatePublisher:
    """Routes updates to the subscribers of the event they belong to."""

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers: dict[str, set[Subscription]] = defaultdict(set)

    def subscribe(self, event_id: EventId) -> Subscription:
        subscription = Subscription(self, event_id, self._queue_size)
        with self._lock:
            self._subscribers[event_id.value].add(subscription)
            total = len(self._subscribers[event_id.value])
        logger.info("Subscriber joined event %s. Total subscribers: %d", event_id, total)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        key = subscription.event_id.value
        with self._lock:
            subscribers = self._subscribers.get(key)
            if not subscribers or subscription not in subscribers:
                return
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscribers[key]
            total = len(subscribers)
        logger.info("Subscriber left event %s. Total subscribers: %d", subscription.event_id, total)

    def publish(self, event_id: EventId, update: LiveUpdate) -> int:
        """Hand ``update`` to every current subscriber of ``event_id``.

        Returns the number of subscribers that accepted it.
        """
        with self._lock:
            targets = list(self._subscribers.get(event_id.value, ()))

        delivered = 0
        for subscription in targets:
            if subscription.offer(update):
                delivered += 1
            else:
                logger.warning(
                    "Dropped %s update for a slow subscriber of event %s (%d dropped so far)",
                    update.type.value,
                    event_id,
                    subscription.dropped,
                )
        return delivered

    def subscriber_count(self, event_id: EventId) -> int:
        with self._lock:
            return len(self._subscribers.get(event_id.value, ()))
