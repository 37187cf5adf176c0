"""Run a small investigation batch and watch its telemetry in the same process."""

import asyncio
import random

from flightscope import (
    AgentEventEmitter,
    BatchRunner,
    FlightItem,
    InvestigationFailed,
    InvestigationResult,
    InvestigationSource,
    TelemetryAggregator,
    get_transport,
    instrument,
)
from flightscope.config import BatchConfig


async def investigate(item: FlightItem) -> InvestigationResult:
    """Pretend provider call that is occasionally rate limited."""
    await asyncio.sleep(0.2)
    if random.random() < 0.3:
        raise InvestigationFailed("429 rate limit")
    return InvestigationResult(
        ai_summary=f"No public records found for {', '.join(item.passenger_names)}",
        sources=[
            InvestigationSource(title="Flight history", url="https://example.org/flights")
        ],
        corroboration_score=0.4,
        generated_queries=[f"{name} {item.flight_id}" for name in item.passenger_names],
        tokens_input=1200,
        tokens_output=300,
    )


async def main():
    transport = get_transport("inmemory")
    aggregator = TelemetryAggregator()
    perform = instrument(investigate, AgentEventEmitter(transport), "investigator")

    flights = [
        FlightItem(flight_id="LH123", passenger_names=["Ada Lovelace"]),
        FlightItem(flight_id="BA456", passenger_names=["Grace Hopper"], model="deepseek"),
        FlightItem(flight_id="AF789", passenger_names=["Alan Turing"], model="grok"),
    ]
    # Shortened delays so the example finishes quickly
    config = BatchConfig(backoff_schedule_ms=[500, 1000, 2000], inter_item_delay_ms=200)
    runner = BatchRunner(flights, perform, config=config)

    progress, _ = await asyncio.gather(
        runner.start(), aggregator.consume(transport, lifespan=10)
    )

    for task in progress.tasks:
        print(f"✈️  {task.task_id}: {task.status.value} (retries={task.retry_count})")
    print(f"📊 {progress.percent_complete:.0f}% complete")

    snapshot = aggregator.snapshot()
    for key, state in snapshot.agents.items():
        print(f"🤖 {key}: {state.status.value}, {state.total_tokens} tokens")
    print(f"💰 Total cost: ${snapshot.total_cost_usd:.6f}")


if __name__ == "__main__":
    asyncio.run(main())
