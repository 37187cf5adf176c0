"""Agent telemetry: event emission, pricing and aggregation."""

from .aggregator import TelemetryAggregator, agent_key
from .emitter import AgentEventEmitter, instrument
from .pricing import ModelPricing, calculate_cost

__all__ = [
    "AgentEventEmitter",
    "ModelPricing",
    "TelemetryAggregator",
    "agent_key",
    "calculate_cost",
    "instrument",
]
