"""Base transport interface for the agent event stream."""

from __future__ import annotations

import abc
from typing import AsyncIterator, Optional

from ..contracts import AgentEvent


class BaseEventTransport(metaclass=abc.ABCMeta):
    """Abstract base transport carrying ordered agent events."""

    async def connect(self) -> None:
        """Open connection to broker (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to broker (no-op by default)."""
        pass

    @abc.abstractmethod
    async def publish(self, topic: str, event: AgentEvent) -> None:
        """Append an event to a topic."""
        raise NotImplementedError

    @abc.abstractmethod
    def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[AgentEvent]:
        """Yield events from ``topic`` in publish order.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep listening. If None, runs indefinitely.
        """
        raise NotImplementedError
