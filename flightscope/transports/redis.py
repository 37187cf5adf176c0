"""Redis transport for cross-process agent events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

try:
    import redis.asyncio as redis
except ImportError:
    redis = None

from pydantic import ValidationError

from ..contracts import AgentEvent
from .base import BaseEventTransport

logger = logging.getLogger(__name__)


class RedisEventTransport(BaseEventTransport):
    """Redis list-backed transport; LPUSH/BRPOP keeps events in order."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ) -> None:
        if redis is None:
            raise ImportError("redis package is required for RedisEventTransport")

        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, topic: str, event: AgentEvent) -> None:
        """Publish event to a Redis list."""
        if not self._redis:
            await self.connect()
        await self._redis.lpush(f"flightscope:{topic}", event.to_json())

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[AgentEvent]:
        """Subscribe to events from a Redis list."""
        if not self._redis:
            await self.connect()

        queue_name = f"flightscope:{topic}"
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan is not None else None

        while True:
            if start_time is not None and loop.time() - start_time >= lifespan:
                break

            result = await self._redis.brpop(queue_name, timeout=1)
            if result:
                _, payload = result
                try:
                    yield AgentEvent.from_json(payload)
                except ValidationError as e:
                    logger.warning(f"Dropping undecodable agent event: {e}")
                continue

            await asyncio.sleep(0.01)
