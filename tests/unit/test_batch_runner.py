"""Batch runner tests."""

import asyncio

import pytest

from flightscope import BatchRunner, BatchStateError, InvestigationFailed
from flightscope.config import BatchConfig
from flightscope.models import RunState, TaskStatus


@pytest.mark.asyncio
async def test_runs_every_task_in_order(make_flights, investigator_factory, recording_sleep):
    investigator = investigator_factory()
    runner = BatchRunner(make_flights("A", "B", "C"), investigator, sleep=recording_sleep)

    progress = await runner.start()

    assert investigator.calls == ["A", "B", "C"]
    assert progress.state == RunState.FINISHED
    assert progress.cursor == 3
    assert progress.completed == 3
    assert progress.failed == 0
    assert progress.percent_complete == pytest.approx(100.0)
    assert all(task.result is not None for task in progress.tasks)
    # inter-item delay between tasks, none after the last
    assert recording_sleep.delays == [2.0, 2.0]


@pytest.mark.asyncio
async def test_rate_limited_task_recovers(make_flights, investigator_factory, recording_sleep):
    investigator = investigator_factory(
        script={
            "B": [
                InvestigationFailed("429 rate limit"),
                InvestigationFailed("429 rate limit"),
            ]
        }
    )
    runner = BatchRunner(make_flights("A", "B", "C"), investigator, sleep=recording_sleep)

    progress = await runner.start()

    statuses = [task.status for task in progress.tasks]
    assert statuses == [TaskStatus.COMPLETED] * 3
    assert progress.tasks[1].retry_count == 2
    assert progress.tasks[1].last_error is None
    assert investigator.calls == ["A", "B", "B", "B", "C"]
    assert recording_sleep.delays == [2.0, 5.0, 15.0, 2.0]


@pytest.mark.asyncio
async def test_fourth_rate_limit_failure_is_terminal(
    make_flights, investigator_factory, recording_sleep
):
    investigator = investigator_factory(
        script={"A": [InvestigationFailed("Rate limit exceeded")] * 5}
    )
    runner = BatchRunner(make_flights("A", "B"), investigator, sleep=recording_sleep)

    progress = await runner.start()

    first = progress.tasks[0]
    assert first.status == TaskStatus.FAILED
    assert first.retry_count == 3
    assert first.last_error == "Rate limit exceeded"
    assert first.result is None
    assert investigator.calls == ["A", "A", "A", "A", "B"]
    assert recording_sleep.delays == [5.0, 15.0, 30.0, 2.0]
    assert progress.tasks[1].status == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_other_failures_are_not_retried(make_flights, investigator_factory, recording_sleep):
    investigator = investigator_factory(script={"A": [ValueError("Flight not found")]})
    runner = BatchRunner(make_flights("A", "B"), investigator, sleep=recording_sleep)

    progress = await runner.start()

    assert investigator.calls == ["A", "B"]
    assert progress.tasks[0].status == TaskStatus.FAILED
    assert progress.tasks[0].retry_count == 0
    assert progress.tasks[0].last_error == "Flight not found"
    assert progress.completed == 1
    assert progress.failed == 1
    assert progress.state == RunState.FINISHED


@pytest.mark.asyncio
async def test_tasks_become_terminal_in_submission_order(
    make_flights, investigator_factory, recording_sleep
):
    observations = []

    def observe(item):
        progress = runner.progress()
        observations.append(progress)
        index = [task.task_id for task in progress.tasks].index(item.flight_id)
        assert all(task.status.is_terminal for task in progress.tasks[:index])
        assert all(task.status == TaskStatus.PENDING for task in progress.tasks[index + 1 :])
        assert progress.tasks[index].status == TaskStatus.PROCESSING

    investigator = investigator_factory(
        script={"B": [InvestigationFailed("HTTP 429")]},
        hooks={flight_id: observe for flight_id in "ABCD"},
    )
    runner = BatchRunner(make_flights("A", "B", "C", "D"), investigator, sleep=recording_sleep)

    await runner.start()

    assert len(observations) == 5
    for progress in observations:
        in_flight = sum(
            1 for task in progress.tasks if task.status in (TaskStatus.PENDING, TaskStatus.PROCESSING)
        )
        assert progress.completed + progress.failed + in_flight == progress.total


@pytest.mark.asyncio
async def test_pause_and_resume_continue_at_cursor(
    make_flights, investigator_factory, recording_sleep
):
    investigator = investigator_factory(hooks={"B": lambda item: runner.pause()})
    runner = BatchRunner(make_flights("A", "B", "C", "D"), investigator, sleep=recording_sleep)

    paused = await runner.start()

    # the in-flight attempt is not aborted
    assert paused.state == RunState.PAUSED
    assert paused.cursor == 2
    assert [task.status for task in paused.tasks] == [
        TaskStatus.COMPLETED,
        TaskStatus.COMPLETED,
        TaskStatus.PENDING,
        TaskStatus.PENDING,
    ]

    resumed = await runner.resume()

    assert resumed.state == RunState.FINISHED
    assert investigator.calls == ["A", "B", "C", "D"]
    assert resumed.completed == 4
    assert recording_sleep.delays == [2.0, 2.0, 2.0]


@pytest.mark.asyncio
async def test_resume_waits_inter_item_delay_owed_by_pause(
    make_flights, investigator_factory, recording_sleep
):
    investigator = investigator_factory(hooks={"A": lambda item: runner.pause()})
    runner = BatchRunner(make_flights("A", "B"), investigator, sleep=recording_sleep)

    await runner.start()
    assert recording_sleep.delays == []

    finished = await runner.resume()

    assert finished.state == RunState.FINISHED
    assert investigator.calls == ["A", "B"]
    assert recording_sleep.delays == [2.0]


@pytest.mark.asyncio
async def test_start_after_stop_resets_even_if_paused_before_lock(
    make_flights, recording_sleep
):
    calls = []
    in_flight = asyncio.Event()
    release = asyncio.Event()

    async def perform(item):
        calls.append(item.flight_id)
        if item.flight_id == "B" and not release.is_set():
            in_flight.set()
            await release.wait()
        return "ok"

    runner = BatchRunner(make_flights("A", "B", "C"), perform, sleep=recording_sleep)

    first = asyncio.create_task(runner.start())
    await in_flight.wait()
    runner.stop()
    restart = asyncio.create_task(runner.start())
    # let the restart reach the drive lock held by the stopped loop
    await asyncio.sleep(0)
    runner.pause()
    release.set()
    await first
    paused = await restart

    assert paused.state == RunState.PAUSED
    assert paused.cursor == 0
    assert [task.status for task in paused.tasks] == [TaskStatus.PENDING] * 3

    resumed = await runner.resume()

    assert resumed.state == RunState.FINISHED
    assert calls == ["A", "B", "A", "B", "C"]
    assert resumed.completed == 3


@pytest.mark.asyncio
async def test_pause_during_backoff_halts_before_retry(
    make_flights, investigator_factory, recording_sleep
):
    def pause_once(item):
        if len(investigator.calls) == 1:
            runner.pause()

    investigator = investigator_factory(
        script={"A": [InvestigationFailed("429 Too Many Requests")]},
        hooks={"A": pause_once},
    )
    runner = BatchRunner(make_flights("A"), investigator, sleep=recording_sleep)

    paused = await runner.start()

    assert paused.state == RunState.PAUSED
    assert paused.cursor == 0
    assert paused.tasks[0].status == TaskStatus.RETRYING
    assert paused.tasks[0].retry_count == 1
    assert recording_sleep.delays == [5.0]

    # start() on a paused run resumes it
    finished = await runner.start()

    assert finished.state == RunState.FINISHED
    assert finished.tasks[0].status == TaskStatus.COMPLETED
    assert finished.tasks[0].retry_count == 1
    assert investigator.calls == ["A", "A"]


@pytest.mark.asyncio
async def test_stop_then_start_begins_fresh_run(
    make_flights, investigator_factory, recording_sleep
):
    def stop_once(item):
        if runner.state == RunState.RUNNING and len(investigator.calls) == 2:
            runner.stop()

    investigator = investigator_factory(
        script={"A": [ValueError("boom")]},
        hooks={"B": stop_once},
    )
    runner = BatchRunner(make_flights("A", "B", "C"), investigator, sleep=recording_sleep)

    stopped = await runner.start()
    assert stopped.state == RunState.STOPPED
    assert stopped.tasks[2].status == TaskStatus.PENDING

    with pytest.raises(BatchStateError):
        await runner.resume()

    finished = await runner.start()

    assert investigator.calls == ["A", "B", "A", "B", "C"]
    assert finished.state == RunState.FINISHED
    assert finished.cursor == 3
    assert [task.status for task in finished.tasks] == [TaskStatus.COMPLETED] * 3


@pytest.mark.asyncio
async def test_restart_after_finish_resets_tasks(
    make_flights, investigator_factory, recording_sleep
):
    investigator = investigator_factory(script={"A": [ValueError("boom")]})
    runner = BatchRunner(make_flights("A", "B"), investigator, sleep=recording_sleep)

    first = await runner.start()
    assert first.failed == 1

    second = await runner.start()
    assert second.failed == 0
    assert second.completed == 2
    assert investigator.calls == ["A", "B", "A", "B"]


@pytest.mark.asyncio
async def test_invalid_controls_raise(make_flights, investigator_factory, recording_sleep):
    errors = []

    async def perform(item):
        try:
            await runner.start()
        except BatchStateError as exc:
            errors.append(exc)
        return "ok"

    runner = BatchRunner(make_flights("A"), perform, sleep=recording_sleep)

    with pytest.raises(BatchStateError):
        runner.pause()
    with pytest.raises(BatchStateError):
        runner.stop()
    with pytest.raises(BatchStateError):
        await runner.resume()

    progress = await runner.start()

    assert len(errors) == 1
    assert progress.state == RunState.FINISHED
    with pytest.raises(BatchStateError):
        runner.pause()


@pytest.mark.asyncio
async def test_custom_retry_config(make_flights, investigator_factory, recording_sleep):
    config = BatchConfig(max_retries=1, backoff_schedule_ms=[100], inter_item_delay_ms=0)
    investigator = investigator_factory(script={"A": [InvestigationFailed("rate limit")] * 2})
    runner = BatchRunner(make_flights("A", "B"), investigator, config=config, sleep=recording_sleep)

    progress = await runner.start()

    assert progress.tasks[0].status == TaskStatus.FAILED
    assert progress.tasks[0].retry_count == 1
    assert recording_sleep.delays == [0.1, 0.0]


@pytest.mark.asyncio
async def test_empty_batch_finishes_immediately(investigator_factory, recording_sleep):
    investigator = investigator_factory()
    runner = BatchRunner([], investigator, sleep=recording_sleep)

    progress = await runner.start()

    assert progress.state == RunState.FINISHED
    assert progress.total == 0
    assert progress.percent_complete == 0.0
    assert investigator.calls == []


def test_progress_before_start(make_flights, investigator_factory):
    runner = BatchRunner(make_flights("A", "B"), investigator_factory())

    progress = runner.progress()

    assert progress.state == RunState.IDLE
    assert progress.pending == 2
    assert [task.task_id for task in progress.tasks] == ["A", "B"]
    # snapshots are copies
    progress.tasks[0].status = TaskStatus.FAILED
    assert runner.progress().tasks[0].status == TaskStatus.PENDING
