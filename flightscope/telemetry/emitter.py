"""Helpers for publishing agent lifecycle events."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from ..config import resolve_model
from ..constants import AGENT_EVENT_TOPIC
from ..contracts import AgentEvent, AgentEventType
from ..transports import BaseEventTransport
from .pricing import calculate_cost

logger = logging.getLogger(__name__)


class AgentEventEmitter:
    """Publish agent events onto a transport topic.

    Publishing is best effort: a transport failure is logged and never
    interrupts the agent work that produced the event.
    """

    def __init__(
        self, transport: BaseEventTransport, topic: str = AGENT_EVENT_TOPIC
    ) -> None:
        self._transport = transport
        self._topic = topic

    async def emit(self, event: AgentEvent) -> None:
        try:
            await self._transport.publish(self._topic, event)
        except Exception as e:
            logger.error(f"Failed to emit agent event {event.event_type.value}: {e}")

    async def start(self, agent_name: str, model: str, operation: str) -> None:
        await self.emit(
            AgentEvent(
                agent_name=agent_name,
                model=model,
                event_type=AgentEventType.START,
                operation=operation,
            )
        )

    async def thinking(self, agent_name: str, model: str) -> None:
        await self.emit(
            AgentEvent(
                agent_name=agent_name, model=model, event_type=AgentEventType.THINKING
            )
        )

    async def executing(self, agent_name: str, model: str, tool_name: str) -> None:
        await self.emit(
            AgentEvent(
                agent_name=agent_name,
                model=model,
                event_type=AgentEventType.EXECUTING,
                operation=f"Executing: {tool_name}",
            )
        )

    async def token_update(
        self, agent_name: str, model: str, tokens_input: int, tokens_output: int
    ) -> None:
        await self.emit(
            AgentEvent(
                agent_name=agent_name,
                model=model,
                event_type=AgentEventType.TOKEN_UPDATE,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                cost_usd=calculate_cost(model, tokens_input, tokens_output),
            )
        )

    async def complete(
        self, agent_name: str, model: str, tokens_input: int = 0, tokens_output: int = 0
    ) -> None:
        await self.emit(
            AgentEvent(
                agent_name=agent_name,
                model=model,
                event_type=AgentEventType.COMPLETE,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                cost_usd=calculate_cost(model, tokens_input, tokens_output),
            )
        )

    async def error(self, agent_name: str, model: str, error_msg: str) -> None:
        await self.emit(
            AgentEvent(
                agent_name=agent_name,
                model=model,
                event_type=AgentEventType.ERROR,
                operation=f"Error: {error_msg}",
            )
        )


def instrument(
    perform: Callable[[Any], Awaitable[Any]],
    emitter: AgentEventEmitter,
    agent_name: str,
    model: Optional[str] = None,
) -> Callable[[Any], Awaitable[Any]]:
    """Wrap a submit operation so every call reports its lifecycle.

    The model defaults to the concrete model behind the item's ``model``
    selector, so costs are priced per model. Failures are
    reported as ``error`` events and re-raised unchanged.
    """

    async def _instrumented(item: Any) -> Any:
        item_model = model or resolve_model(getattr(item, "model", None))
        item_id = getattr(item, "item_id", item)
        await emitter.start(agent_name, item_model, f"Investigating {item_id}")
        try:
            result = await perform(item)
        except Exception as e:
            await emitter.error(agent_name, item_model, str(e))
            raise
        await emitter.complete(
            agent_name,
            item_model,
            tokens_input=getattr(result, "tokens_input", 0) or 0,
            tokens_output=getattr(result, "tokens_output", 0) or 0,
        )
        return result

    return _instrumented
