"""Loading helpers for the batch CLI."""

from __future__ import annotations

import inspect
import json
from importlib import import_module
from pathlib import Path
from typing import Any, Callable, List, Optional

import yaml

from ..contracts import FlightItem


def load_flights(path: Path, model: Optional[str] = None) -> List[FlightItem]:
    """Read a JSON or YAML list of flights into ``FlightItem`` objects.

    ``model`` overrides the selector of entries that do not set their own.
    """
    text = path.read_text()
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or []
    else:
        data = json.loads(text)

    if isinstance(data, dict):
        data = data.get("flights", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of flights")

    items = []
    for entry in data:
        if model and "model" not in entry:
            entry = {**entry, "model": model}
        items.append(FlightItem.model_validate(entry))
    return items


def resolve_callable(target: str) -> Callable[..., Any]:
    """Import ``module:attribute`` and return the async callable it names."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected 'module:function', got {target!r}")

    module = import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)

    if not inspect.iscoroutinefunction(obj) and not inspect.iscoroutinefunction(
        getattr(obj, "__call__", None)
    ):
        raise TypeError(f"{target} is not an async callable")
    return obj
