from __future__ import annotations

import os
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from .constants import (
    AGENT_EVENT_TOPIC,
    BACKOFF_SCHEDULE_MS,
    DEFAULT_MODEL,
    HISTORY_LIMIT,
    INTER_ITEM_DELAY_MS,
    MAX_RETRIES,
)

# Environment variables checked, in order, for each provider's API key.
PROVIDER_API_KEY_ENV: Dict[str, tuple[str, ...]] = {
    "gemini": ("GENAI_API_KEY", "GOOGLE_GENAI_API_KEY", "GEMINI_API_KEY"),
    "deepseek": ("DEEPSEEK_API_KEY",),
    "grok": ("GROK_API_KEY", "XAI_API_KEY"),
}

# Concrete model each provider selector runs investigations on.
PROVIDER_MODELS: Dict[str, str] = {
    "gemini": "gemini-2.0-flash-exp",
    "deepseek": "deepseek-chat",
    "grok": "grok-2-1212",
}


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing."""


class RedisConfig(BaseModel):
    """Configuration for Redis transport."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = RedisConfig()


class BatchConfig(BaseModel):
    """Retry and pacing settings for batch runs."""

    max_retries: int = Field(default=MAX_RETRIES, ge=0)
    backoff_schedule_ms: List[int] = Field(
        default_factory=lambda: list(BACKOFF_SCHEDULE_MS)
    )
    inter_item_delay_ms: int = Field(default=INTER_ITEM_DELAY_MS, ge=0)

    @model_validator(mode="after")
    def _schedule_covers_retries(self) -> "BatchConfig":
        if len(self.backoff_schedule_ms) < self.max_retries:
            raise ValueError(
                "backoff_schedule_ms must define a delay for every retry "
                f"({len(self.backoff_schedule_ms)} < {self.max_retries})"
            )
        if any(delay < 0 for delay in self.backoff_schedule_ms):
            raise ValueError("backoff delays must be non-negative")
        return self


class TelemetryConfig(BaseModel):
    """Agent telemetry settings."""

    history_limit: int = Field(default=HISTORY_LIMIT, gt=0)
    topic: str = AGENT_EVENT_TOPIC


class FlightscopeConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = TransportConfig()
    batch: BatchConfig = BatchConfig()
    telemetry: TelemetryConfig = TelemetryConfig()
    default_model: str = DEFAULT_MODEL
    api_keys: Dict[str, str] = Field(default_factory=dict)


def load_config(path: Optional[str] = None) -> FlightscopeConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLIGHTSCOPE_CONFIG
            env variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLIGHTSCOPE_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return FlightscopeConfig(**data)
    return FlightscopeConfig()


def select_provider(model: Optional[str]) -> str:
    """Map a model selector onto a provider name, defaulting to gemini."""
    selected = (model or DEFAULT_MODEL).lower()
    for provider in ("deepseek", "grok"):
        if selected.startswith(provider):
            return provider
    return "gemini"


def resolve_model(model: Optional[str]) -> str:
    """Return the concrete model name for a provider selector.

    Names that are not bare selectors are returned unchanged.
    """
    selected = model or DEFAULT_MODEL
    return PROVIDER_MODELS.get(selected.lower(), selected)


def get_api_key(provider: str, config: Optional[FlightscopeConfig] = None) -> str:
    """Return the API key for ``provider``.

    Environment variables take precedence over the ``api_keys`` section of
    the configuration.
    """

    env_vars = PROVIDER_API_KEY_ENV.get(provider)
    if env_vars is None:
        raise ConfigurationError(f"Unknown provider: {provider}")

    for env_var in env_vars:
        key = os.getenv(env_var)
        if key:
            return key

    config = config or load_config()
    key = config.api_keys.get(provider)
    if key:
        return key
    raise ConfigurationError(
        f"{provider}_api_key not configured. Set {env_vars[0]} environment "
        "variable or add it under api_keys in the config file."
    )
