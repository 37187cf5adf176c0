"""State records for batch runs and tracked agents."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import MAX_RETRIES
from .contracts import AgentEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskState(BaseModel):
    """Per-item record of one unit of batch work."""

    task_id: str
    item: Any
    status: TaskStatus = TaskStatus.PENDING
    retry_count: int = 0
    retry_limit: int = MAX_RETRIES
    last_error: Optional[str] = None
    result: Optional[Any] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def mark_processing(self) -> None:
        self.status = TaskStatus.PROCESSING
        self.last_error = None
        if self.started_at is None:
            self.started_at = _utcnow()

    def mark_retrying(self) -> None:
        if self.retry_count >= self.retry_limit:
            raise ValueError(
                f"Task {self.task_id} already used {self.retry_count} retries"
            )
        self.retry_count += 1
        self.status = TaskStatus.RETRYING

    def mark_completed(self, result: Any) -> None:
        self.status = TaskStatus.COMPLETED
        self.result = result
        self.last_error = None
        self.completed_at = _utcnow()

    def mark_failed(self, error: str) -> None:
        self.status = TaskStatus.FAILED
        self.last_error = error
        self.result = None
        self.completed_at = _utcnow()

    def reset(self) -> None:
        """Return the task to ``pending`` for a fresh run."""
        self.status = TaskStatus.PENDING
        self.retry_count = 0
        self.last_error = None
        self.result = None
        self.started_at = None
        self.completed_at = None


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    FINISHED = "finished"


class BatchProgress(BaseModel):
    """Read-only snapshot of a batch run."""

    model_config = ConfigDict(frozen=True)

    state: RunState
    cursor: int
    total: int
    completed: int
    failed: int
    percent_complete: float
    tasks: List[TaskState] = Field(default_factory=list)

    @property
    def pending(self) -> int:
        return self.total - self.completed - self.failed


class AgentStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    EXECUTING = "executing"
    COMPLETE = "complete"
    ERROR = "error"


class AgentState(BaseModel):
    """Running totals for one agent/model pair."""

    agent_name: str
    model: str
    status: AgentStatus = AgentStatus.IDLE
    current_operation: Optional[str] = None
    tokens_input: int = 0
    tokens_output: int = 0
    cost_usd: float = 0.0
    started_at: datetime
    last_updated: datetime

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output


class TelemetrySnapshot(BaseModel):
    """Immutable view of aggregated agent telemetry."""

    model_config = ConfigDict(frozen=True)

    agents: Dict[str, AgentState] = Field(default_factory=dict)
    history: List[AgentEvent] = Field(default_factory=list)
    total_cost_usd: float = 0.0
    total_tokens: int = 0
