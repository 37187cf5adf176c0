"""flightscope: serial flight-investigation batches and agent telemetry."""

from .batch import BatchRunner, BatchStateError, RunSignal
from .config import FlightscopeConfig, load_config
from .contracts import (
    AgentEvent,
    AgentEventType,
    FlightItem,
    InvestigationFailed,
    InvestigationResult,
    InvestigationSource,
)
from .models import (
    AgentState,
    AgentStatus,
    BatchProgress,
    RunState,
    TaskState,
    TaskStatus,
    TelemetrySnapshot,
)
from .telemetry import AgentEventEmitter, TelemetryAggregator, instrument
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "AgentEvent",
    "AgentEventEmitter",
    "AgentEventType",
    "AgentState",
    "AgentStatus",
    "BatchProgress",
    "BatchRunner",
    "BatchStateError",
    "FlightItem",
    "FlightscopeConfig",
    "InvestigationFailed",
    "InvestigationResult",
    "InvestigationSource",
    "RunSignal",
    "RunState",
    "TaskState",
    "TaskStatus",
    "TelemetryAggregator",
    "TelemetrySnapshot",
    "get_transport",
    "instrument",
    "load_config",
]
