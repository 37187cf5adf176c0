"""Fold the agent event stream into per-agent running totals."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Optional

from ..constants import AGENT_EVENT_TOPIC, HISTORY_LIMIT
from ..contracts import AgentEvent, AgentEventType
from ..models import AgentState, AgentStatus, TelemetrySnapshot
from ..transports import BaseEventTransport

logger = logging.getLogger(__name__)


def agent_key(agent_name: str, model: str) -> str:
    return f"{agent_name}-{model}"


class TelemetryAggregator:
    """Sole writer of agent state.

    Events are applied one at a time, in arrival order, through :meth:`apply`.
    Events for an agent that has not sent ``start`` are recorded in the
    history but otherwise ignored.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self._agents: Dict[str, AgentState] = {}
        self._history: Deque[AgentEvent] = deque(maxlen=history_limit)

    def apply(self, event: AgentEvent) -> None:
        """Apply a single event to the keyed store and history."""
        key = event.key
        state = self._agents.get(key)

        if event.event_type is AgentEventType.START:
            self._agents[key] = AgentState(
                agent_name=event.agent_name,
                model=event.model,
                status=AgentStatus.THINKING,
                current_operation=event.operation,
                started_at=event.timestamp,
                last_updated=event.timestamp,
            )
        elif state is None:
            logger.debug(f"Dropping {event.event_type.value} event for unknown agent {key}")
        else:
            self._fold(state, event)

        self._history.appendleft(event)

    def _fold(self, state: AgentState, event: AgentEvent) -> None:
        kind = event.event_type
        if kind is AgentEventType.THINKING:
            state.status = AgentStatus.THINKING
        elif kind is AgentEventType.EXECUTING:
            state.status = AgentStatus.EXECUTING
            state.current_operation = event.operation
        elif kind is AgentEventType.TOKEN_UPDATE:
            self._add_usage(state, event)
        elif kind is AgentEventType.COMPLETE:
            state.status = AgentStatus.COMPLETE
            # completion may carry a final increment
            self._add_usage(state, event)
        elif kind is AgentEventType.ERROR:
            state.status = AgentStatus.ERROR
            state.current_operation = event.operation

        state.last_updated = max(state.last_updated, event.timestamp)

    @staticmethod
    def _add_usage(state: AgentState, event: AgentEvent) -> None:
        state.tokens_input += event.tokens_input or 0
        state.tokens_output += event.tokens_output or 0
        state.cost_usd += event.cost_usd or 0.0

    def clear(self) -> None:
        """Discard all agent state and history."""
        self._agents = {}
        self._history.clear()

    def get(self, agent_name: str, model: str) -> Optional[AgentState]:
        state = self._agents.get(agent_key(agent_name, model))
        return state.model_copy() if state is not None else None

    def snapshot(self) -> TelemetrySnapshot:
        """Return a copy of all agent state, the history and the totals."""
        agents = {key: state.model_copy() for key, state in self._agents.items()}
        return TelemetrySnapshot(
            agents=agents,
            history=list(self._history),
            total_cost_usd=sum(state.cost_usd for state in agents.values()),
            total_tokens=sum(state.total_tokens for state in agents.values()),
        )

    async def consume(
        self,
        transport: BaseEventTransport,
        topic: str = AGENT_EVENT_TOPIC,
        lifespan: Optional[float] = None,
    ) -> None:
        """Apply events from ``transport`` until the subscription ends."""
        async for event in transport.subscribe(topic, lifespan=lifespan):
            self.apply(event)
