"""In-process pub/sub for session and appraisal notifications."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)

SESSION_TOPIC = "session"
APPRAISALS_TOPIC = "appraisals"

Event = dict[str, Any]


class EventBus:
    def __init__(self, *, max_queue: int = 100) -> None:
        self.max_queue = max_queue
        self._subscribers: dict[str, list[asyncio.Queue[Event]]] = defaultdict(list)

    async def publish(self, topic: str, event: Event) -> int:
        """Deliver ``event`` to every current subscriber of ``topic``; returns how many got it."""
        delivered = 0
        for queue in list(self._subscribers.get(topic, [])):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Dropping %s event %s for a slow subscriber", topic, event.get("event"))
                continue
            delivered += 1
        return delivered

    async def subscribe(self, topic: str) -> AsyncIterator[Event]:
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self.max_queue)
        self._subscribers[topic].append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            subscribers = self._subscribers.get(topic, [])
            if queue in subscribers:
                subscribers.remove(queue)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))


_EVENT_BUS: EventBus | None = None


def get_event_bus() -> EventBus:
    global _EVENT_BUS
    if _EVENT_BUS is None:
        _EVENT_BUS = EventBus()
    return _EVENT_BUS
