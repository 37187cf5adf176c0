"""Command line interface for flightscope batch runs and telemetry."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import yaml

from flightscope import BatchRunner, TelemetryAggregator, get_transport, load_config
from flightscope.cli_utils.loader import load_flights, resolve_callable
from flightscope.config import ConfigurationError, get_api_key, select_provider
from flightscope.models import BatchProgress, TelemetrySnapshot
from flightscope.telemetry import AgentEventEmitter, ModelPricing, instrument

app = typer.Typer(help="CLI for flightscope batch investigations")

batch_app = typer.Typer(help="Commands for running investigation batches")
telemetry_app = typer.Typer(help="Commands for watching agent telemetry")

app.add_typer(batch_app, name="batch")
app.add_typer(telemetry_app, name="telemetry")


@app.callback()
def main() -> None:
    """flightscope CLI entry point."""
    pass


def _echo_progress(progress: BatchProgress) -> None:
    for task in progress.tasks:
        line = f"{task.task_id}\t{task.status.value}"
        if task.retry_count:
            line += f"\tretries={task.retry_count}"
        if task.last_error:
            line += f"\t{task.last_error}"
        typer.echo(line)
    typer.echo(
        f"Completed: {progress.completed}  Failed: {progress.failed}  "
        f"({progress.percent_complete:.0f}%)"
    )


def _echo_snapshot(snapshot: TelemetrySnapshot) -> None:
    if not snapshot.agents:
        typer.echo("No agent activity recorded")
    for key, state in sorted(snapshot.agents.items()):
        operation = f"\t{state.current_operation}" if state.current_operation else ""
        typer.echo(
            f"{key}\t{state.status.value}\t"
            f"{state.tokens_input}/{state.tokens_output} tokens\t"
            f"${state.cost_usd:.6f}{operation}"
        )
    typer.echo(
        f"Total tokens: {snapshot.total_tokens}  "
        f"Total cost: ${snapshot.total_cost_usd:.6f}"
    )


@batch_app.command("run")
def batch_run(
    flights_file: Path,
    investigator: str = typer.Option(
        ..., help="Async submit operation as 'module:function'"
    ),
    model: Optional[str] = typer.Option(
        None, help="Model selector for flights that do not set one"
    ),
    agent_name: str = typer.Option("investigator", help="Agent name for telemetry"),
    emit: bool = typer.Option(True, help="Publish agent events to the transport"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """
    Investigate every flight in FLIGHTS_FILE, one at a time.

    Rate-limited calls are retried with backoff; other failures are recorded
    against the flight and the batch moves on.

    Example:
        flightscope batch run flights.json --investigator myapp.research:investigate
        # Output: LH123    completed
        #         BA456    failed    Flight not found
        #         Completed: 1  Failed: 1  (100%)
    """
    config = load_config(str(config_path) if config_path else None)
    if not flights_file.exists():
        typer.secho("Flights file does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        items = load_flights(flights_file, model=model or config.default_model)
        perform = resolve_callable(investigator)
    except (ValueError, TypeError, ImportError, AttributeError, yaml.YAMLError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    # every provider in the batch needs a key before the first flight runs
    try:
        for provider in sorted({select_provider(item.model) for item in items}):
            get_api_key(provider, config)
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    async def _run() -> BatchProgress:
        submit = perform
        transport = None
        if emit:
            transport = get_transport(config=config)
            await transport.connect()
            emitter = AgentEventEmitter(transport, topic=config.telemetry.topic)
            submit = instrument(perform, emitter, agent_name)
        try:
            runner = BatchRunner(items, submit, config=config.batch)
            return await runner.start()
        finally:
            if transport is not None:
                await transport.disconnect()

    typer.echo(f"Investigating {len(items)} flight(s)")
    _echo_progress(asyncio.run(_run()))


@telemetry_app.command("watch")
def telemetry_watch(
    lifespan: float = typer.Option(10.0, help="Seconds to listen for events"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """
    Listen to the agent event stream and print per-agent totals.

    Example:
        flightscope telemetry watch --lifespan 60
        # Output: investigator-gemini-1.5-pro    complete    1200/300 tokens    $0.003000
        #         Total tokens: 1500  Total cost: $0.003000
    """
    config = load_config(str(config_path) if config_path else None)
    aggregator = TelemetryAggregator(history_limit=config.telemetry.history_limit)

    async def _watch() -> None:
        transport = get_transport(config=config)
        await transport.connect()
        try:
            await aggregator.consume(
                transport, topic=config.telemetry.topic, lifespan=lifespan
            )
        finally:
            await transport.disconnect()

    asyncio.run(_watch())
    _echo_snapshot(aggregator.snapshot())


@app.command("pricing")
def pricing(model: str, tokens_input: int, tokens_output: int) -> None:
    """Print the USD cost of a token count on MODEL."""
    cost = ModelPricing.for_model(model).calculate_cost(tokens_input, tokens_output)
    typer.echo(f"{model}: ${cost:.6f}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
