"""
In-process publish/subscribe broker for match changes.
WebSocket subscribers receive an event whenever matches or activity logs change.
"""

from typing import Any, Dict, Optional, Set
import asyncio
import logging

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class MatchEventBroker:
    """
    Fan-out broker with one bounded asyncio.Queue per subscriber.

    Publishing never blocks: a subscriber whose queue is full loses its oldest
    event so the newest one can be queued.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        """Register a new subscriber and return its queue."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        logger.debug(f"Realtime subscriber added ({self.subscriber_count} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        logger.debug(f"Realtime subscriber removed ({self.subscriber_count} total)")

    def publish(self, table: str, event: str, buyer_id: Optional[Any] = None, **payload: Any) -> int:
        """
        Publish an event to every subscriber.

        Args:
            table: Table that changed, e.g. "matches" or "activity_logs"
            event: Kind of change, e.g. "matches_changed" or "insert"
            buyer_id: Buyer the change belongs to
            **payload: Extra event fields

        Returns:
            Number of subscribers the event was delivered to
        """
        message: Dict[str, Any] = {
            "table": table,
            "event": event,
            "buyer_id": str(buyer_id) if buyer_id is not None else None,
            **payload,
        }

        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
                logger.warning("Realtime subscriber queue full, dropped oldest event")
            queue.put_nowait(message)

        return len(self._subscribers)


match_event_broker = MatchEventBroker()


def get_match_event_broker() -> MatchEventBroker:
    """Dependency returning the process-wide broker."""
    return match_event_broker
