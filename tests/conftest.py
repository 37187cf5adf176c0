"""Shared fixtures for flightscope tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import pytest

from flightscope.contracts import FlightItem, InvestigationResult


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedInvestigator:
    """Submit operation whose outcome per flight is scripted.

    ``script`` maps a flight id to a list of outcomes consumed one per call;
    an ``Exception`` outcome is raised, anything else (or an exhausted list)
    yields a successful result. ``hooks`` run at the start of a call.
    """

    def __init__(
        self,
        script: Optional[Dict[str, list]] = None,
        hooks: Optional[Dict[str, Callable[[FlightItem], None]]] = None,
    ) -> None:
        self.script = {key: list(value) for key, value in (script or {}).items()}
        self.hooks = hooks or {}
        self.calls: List[str] = []

    async def __call__(self, item: FlightItem) -> InvestigationResult:
        self.calls.append(item.flight_id)
        hook = self.hooks.get(item.flight_id)
        if hook is not None:
            hook(item)
        outcomes = self.script.get(item.flight_id)
        outcome = outcomes.pop(0) if outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        return InvestigationResult(
            ai_summary=f"Summary for {item.flight_id}",
            corroboration_score=0.8,
            generated_queries=[f"{name} {item.flight_id}" for name in item.passenger_names],
            tokens_input=100,
            tokens_output=50,
        )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def investigator_factory():
    return ScriptedInvestigator


@pytest.fixture
def make_flights():
    def _make(*flight_ids: str) -> List[FlightItem]:
        return [
            FlightItem(flight_id=flight_id, passenger_names=["Ada Lovelace"])
            for flight_id in flight_ids
        ]

    return _make
