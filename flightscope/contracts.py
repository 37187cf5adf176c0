"""Core contracts exchanged with investigators and the agent event stream."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_MODEL


class InvestigationFailed(Exception):
    """Failure raised by a submit operation.

    The message is what the batch runner inspects for rate-limit signals.
    """


class FlightItem(BaseModel):
    """Payload needed to investigate one flight."""

    flight_id: str
    passenger_names: List[str] = Field(default_factory=list)
    model: str = DEFAULT_MODEL

    @property
    def item_id(self) -> str:
        return self.flight_id


class InvestigationSource(BaseModel):
    """A citation backing an investigation result."""

    title: str
    url: str
    excerpt: str = ""
    relevance_score: float = 0.0
    publication_date: Optional[str] = None


class InvestigationResult(BaseModel):
    """Structured success result of a flight investigation."""

    investigation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: str = "completed"
    ai_summary: str = ""
    sources: List[InvestigationSource] = Field(default_factory=list)
    corroboration_score: float = 0.0
    generated_queries: List[str] = Field(default_factory=list)
    processing_time_ms: int = 0
    tokens_input: int = Field(default=0, ge=0)
    tokens_output: int = Field(default=0, ge=0)


class AgentEventType(str, Enum):
    START = "start"
    THINKING = "thinking"
    EXECUTING = "executing"
    TOKEN_UPDATE = "token_update"
    COMPLETE = "complete"
    ERROR = "error"


class AgentEvent(BaseModel):
    """Status event emitted by an agent while it works."""

    model_config = ConfigDict(frozen=True)

    agent_name: str
    model: str
    event_type: AgentEventType
    operation: Optional[str] = None
    tokens_input: Optional[int] = Field(default=None, ge=0)
    tokens_output: Optional[int] = Field(default=None, ge=0)
    cost_usd: Optional[float] = Field(default=None, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def key(self) -> str:
        return f"{self.agent_name}-{self.model}"

    def to_json(self) -> str:
        """Serialize event to JSON."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "AgentEvent":
        """Deserialize event from JSON."""
        return cls.model_validate_json(data)
