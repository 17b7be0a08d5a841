from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]

ALL_TOPICS = "*"


class EventBus:
    """Topic-keyed notifications for one tailoring session.

    Listeners run synchronously inside ``publish``; async consumers read from
    a queue through ``subscribe``. Subscribing to ``"*"`` receives every topic.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._queues: dict[str, list[asyncio.Queue[dict[str, Any]]]] = defaultdict(list)

    def add_listener(self, topic: str, listener: Listener) -> Callable[[], None]:
        self._listeners[topic].append(listener)

        def remove() -> None:
            if listener in self._listeners.get(topic, []):
                self._listeners[topic].remove(listener)

        return remove

    def publish(self, topic: str, payload: dict[str, Any] | None = None) -> None:
        event = {"topic": topic, **(payload or {})}
        for key in (topic, ALL_TOPICS):
            for listener in list(self._listeners.get(key, [])):
                try:
                    listener(event)
                except Exception:
                    logger.exception("Listener failed for topic=%s", topic)
            for queue in list(self._queues.get(key, [])):
                queue.put_nowait(event)

    async def subscribe(self, topic: str = ALL_TOPICS) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._queues[topic].append(queue)

        try:
            while True:
                event = await queue.get()
                yield event
        finally:
            if queue in self._queues.get(topic, []):
                self._queues[topic].remove(queue)
