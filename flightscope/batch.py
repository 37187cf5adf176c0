"""Serial batch runner with rate-limit retry, pause, resume and stop."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from .config import BatchConfig
from .models import BatchProgress, RunState, TaskState, TaskStatus
from .utils.retry import is_retryable, schedule_retry

logger = logging.getLogger(__name__)

PerformFn = Callable[[Any], Awaitable[Any]]
SleepFn = Callable[[float], Awaitable[None]]

_TRANSITIONS: Dict[RunState, Set[RunState]] = {
    RunState.IDLE: {RunState.RUNNING},
    RunState.RUNNING: {RunState.PAUSED, RunState.STOPPED, RunState.FINISHED},
    RunState.PAUSED: {RunState.RUNNING, RunState.STOPPED},
    RunState.STOPPED: {RunState.RUNNING},
    RunState.FINISHED: {RunState.RUNNING},
}


class BatchStateError(RuntimeError):
    """Raised when a control is used in a run state that does not allow it."""


class RunSignal:
    """Cooperative pause/stop request shared with one drive loop."""

    def __init__(self) -> None:
        self._paused = False
        self._stopped = False

    def pause(self) -> None:
        self._paused = True

    def stop(self) -> None:
        self._stopped = True

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def active(self) -> bool:
        return not (self._paused or self._stopped)


def _default_task_id(item: Any, index: int) -> str:
    return str(getattr(item, "item_id", None) or index)


class BatchRunner:
    """Drive an ordered list of items through ``perform`` one at a time.

    Failures whose text carries a rate-limit signal are retried with the
    configured backoff schedule; any other failure is recorded on the task and
    the run moves on. Pause and stop never interrupt an in-flight call, they
    only prevent the next step from being scheduled.
    """

    def __init__(
        self,
        items: Sequence[Any],
        perform: PerformFn,
        config: Optional[BatchConfig] = None,
        sleep: SleepFn = asyncio.sleep,
        identify: Optional[Callable[[Any, int], str]] = None,
    ) -> None:
        self._config = config or BatchConfig()
        self._perform = perform
        self._sleep = sleep
        identify = identify or _default_task_id
        self._tasks: List[TaskState] = [
            TaskState(
                task_id=identify(item, index),
                item=item,
                retry_limit=self._config.max_retries,
            )
            for index, item in enumerate(items)
        ]
        self._cursor = 0
        self._state = RunState.IDLE
        self._signal = RunSignal()
        self._drive_lock = asyncio.Lock()
        self._reset_pending = False
        self._delay_owed = False

    # ------------------------------------------------------------------
    @property
    def state(self) -> RunState:
        return self._state

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._tasks)

    def progress(self) -> BatchProgress:
        """Return a snapshot of every task plus the derived counters."""
        tasks = [task.model_copy(deep=True) for task in self._tasks]
        completed = sum(1 for t in tasks if t.status is TaskStatus.COMPLETED)
        failed = sum(1 for t in tasks if t.status is TaskStatus.FAILED)
        total = len(tasks)
        percent = (completed + failed) / total * 100 if total else 0.0
        return BatchProgress(
            state=self._state,
            cursor=self._cursor,
            total=total,
            completed=completed,
            failed=failed,
            percent_complete=percent,
            tasks=tasks,
        )

    # ------------------------------------------------------------------
    # Controls
    async def start(self) -> BatchProgress:
        """Start a fresh run over the task list and drive it.

        A paused run is resumed instead. Returns the progress snapshot once
        the drive loop exits (finished, paused or stopped).
        """
        if self._state is RunState.PAUSED:
            return await self.resume()
        self._transition(RunState.RUNNING)
        self._reset_pending = True
        logger.info(f"Starting batch run over {len(self._tasks)} task(s)")
        return await self._run()

    async def resume(self) -> BatchProgress:
        """Continue a paused run at the retained cursor."""
        if self._state is not RunState.PAUSED:
            raise BatchStateError(
                f"Only a paused batch can be resumed (state={self._state.value})"
            )
        self._transition(RunState.RUNNING)
        logger.info(f"Resuming batch run at task {self._cursor}")
        return await self._run()

    def pause(self) -> None:
        """Halt before the next task or retry; the cursor is retained."""
        self._transition(RunState.PAUSED)
        self._signal.pause()
        logger.info(f"Pause requested at task {self._cursor}")

    def stop(self) -> None:
        """Abandon the run; the next ``start`` begins from the first task."""
        self._transition(RunState.STOPPED)
        self._signal.stop()
        logger.info(f"Stop requested at task {self._cursor}")

    # ------------------------------------------------------------------
    def _transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise BatchStateError(
                f"Cannot move batch from {self._state.value} to {target.value}"
            )
        self._state = target

    async def _run(self) -> BatchProgress:
        signal = RunSignal()
        self._signal = signal
        # A previous loop may still be finishing its in-flight attempt.
        async with self._drive_lock:
            # Applied even if a pause or stop arrived while waiting for the lock.
            if self._reset_pending:
                self._reset_pending = False
                self._delay_owed = False
                self._cursor = 0
                for task in self._tasks:
                    task.reset()
            if signal.active:
                await self._drive(signal)
        return self.progress()

    async def _drive(self, signal: RunSignal) -> None:
        total = len(self._tasks)
        if self._delay_owed and 0 < self._cursor < total:
            await self._sleep(self._config.inter_item_delay_ms / 1000)
        self._delay_owed = False

        while self._cursor < total and signal.active:
            task = self._tasks[self._cursor]
            if not await self._attempt(task, signal):
                break
            self._cursor += 1
            if self._cursor < total:
                if not signal.active:
                    # paid by the loop that resumes at this cursor
                    self._delay_owed = True
                    break
                await self._sleep(self._config.inter_item_delay_ms / 1000)

        if self._cursor >= total and signal.active:
            self._transition(RunState.FINISHED)
            progress = self.progress()
            logger.info(
                f"Batch run finished: {progress.completed} completed, "
                f"{progress.failed} failed"
            )

    async def _attempt(self, task: TaskState, signal: RunSignal) -> bool:
        """Run ``task`` until it is terminal.

        Returns ``False`` when a pause or stop arrived during a backoff wait,
        leaving the task ``retrying`` at the current cursor.
        """
        while True:
            task.mark_processing()
            try:
                result = await self._perform(task.item)
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
                if is_retryable(error) and task.retry_count < self._config.max_retries:
                    task.mark_retrying()
                    logger.warning(
                        f"Task {task.task_id} rate limited, retry "
                        f"{task.retry_count}/{self._config.max_retries}: {error}"
                    )
                    await schedule_retry(
                        task.retry_count,
                        self._config.backoff_schedule_ms,
                        sleep=self._sleep,
                    )
                    if not signal.active:
                        logger.info(f"Batch halted before retrying task {task.task_id}")
                        return False
                    continue

                task.mark_failed(error)
                logger.warning(f"Task {task.task_id} failed: {error}")
                return True

            task.mark_completed(result)
            logger.debug(f"Task {task.task_id} completed")
            return True
