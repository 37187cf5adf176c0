"""In-memory transport for tests and single-process use."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import AsyncIterator, Deque, Dict, Optional

from ..contracts import AgentEvent
from .base import BaseEventTransport


class InMemoryEventTransport(BaseEventTransport):
    """Simple in-process queue per topic."""

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._queues: Dict[str, Deque[AgentEvent]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._poll_interval = poll_interval

    async def publish(self, topic: str, event: AgentEvent) -> None:
        """Publish event to in-memory queue."""
        async with self._lock:
            self._queues[topic].append(event)

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[AgentEvent]:
        """Subscribe to events from topic.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep listening. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan is not None else None

        while True:
            if start_time is not None and loop.time() - start_time >= lifespan:
                break

            async with self._lock:
                event = self._queues[topic].popleft() if self._queues[topic] else None
            if event is not None:
                yield event
                continue

            await asyncio.sleep(self._poll_interval)

    def pending(self, topic: str) -> int:
        """Number of events published to ``topic`` but not yet consumed."""
        return len(self._queues[topic])
