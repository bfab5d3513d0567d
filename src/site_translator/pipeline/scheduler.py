# SPDX-License-Identifier: Apache-2.0
"""Bounded-concurrency task scheduler with cooperative cancel and pause.

Tasks are admitted in order. Before each admission the scheduler waits
``delay_ms`` (except for the first task), blocks while the rate-limit pause
is active, and stops admitting once the cancel token is set. Tasks already
running are always allowed to finish.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from site_translator.pipeline.progress import ActiveTask, ProgressCallback
from site_translator.providers.base import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Pause/cancel polling granularity in seconds
DEFAULT_POLL_INTERVAL = 1.0

_RATE_LIMIT_STATUS = re.compile(r"API error 429\b")


class CancellationToken:
    """One-way cancel flag shared between the caller and a run."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class RateLimitPause:
    """Pool-wide pause raised while a task retries after a rate limit.

    Holds are counted, so one task releasing its hold does not lift a pause
    another task still needs.
    """

    def __init__(self) -> None:
        self._holders = 0

    @property
    def active(self) -> bool:
        return self._holders > 0

    def hold(self) -> None:
        self._holders += 1

    def release(self) -> None:
        self._holders = max(0, self._holders - 1)

    async def wait_clear(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """Sleep until no task holds the pause (or the run is cancelled)."""
        while self.active:
            if cancel_token is not None and cancel_token.cancelled:
                return
            await asyncio.sleep(poll_interval)


@dataclass(frozen=True)
class TranslationTask(Generic[T]):
    """A unit of work for the scheduler.

    Attributes:
        id: Unique id within one run (e.g. ``"de-0"``).
        execute: Zero-argument coroutine factory. Called again for a retry.
        language: Language code, for progress display.
        chunk: Zero-based chunk index, for progress display.
    """

    id: str
    execute: Callable[[], Awaitable[T]]
    language: str | None = None
    chunk: int | None = None

    def describe(self) -> ActiveTask:
        return ActiveTask(task_id=self.id, language=self.language, chunk=self.chunk)


@dataclass
class TaskOutcome(Generic[T]):
    """Result of one executed task."""

    task_id: str
    result: T | None = None
    error: Exception | None = None
    rate_limit_retried: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class ScheduleReport(Generic[T]):
    """Per-position outcomes of a scheduler run.

    ``outcomes[i]`` is None when task ``i`` was never started (cancelled).
    """

    outcomes: list[TaskOutcome[T] | None] = field(default_factory=list)
    cancelled: bool = False

    @property
    def results(self) -> dict[int, T | None]:
        return {
            i: outcome.result
            for i, outcome in enumerate(self.outcomes)
            if outcome is not None and outcome.succeeded
        }

    @property
    def errors(self) -> dict[int, Exception]:
        return {
            i: outcome.error
            for i, outcome in enumerate(self.outcomes)
            if outcome is not None and outcome.error is not None
        }

    @property
    def skipped(self) -> list[int]:
        return [i for i, outcome in enumerate(self.outcomes) if outcome is None]


def is_rate_limit_error(error: BaseException) -> bool:
    """Whether an error is an HTTP 429 rate limit.

    Only a ``RateLimitError`` or a message that starts with the status line
    (``API error 429``) counts; a 429 elsewhere in the text does not.
    """
    if isinstance(error, RateLimitError):
        return True
    return _RATE_LIMIT_STATUS.match(str(error)) is not None


async def _attempt(task: TranslationTask[T], pause: RateLimitPause) -> TaskOutcome[T]:
    try:
        return TaskOutcome(task.id, result=await task.execute())
    except Exception as error:
        if not is_rate_limit_error(error):
            logger.error("Task %s failed: %s", task.id, error)
            return TaskOutcome(task.id, error=error)
        logger.warning("Task %s hit a rate limit, pausing the pool and retrying", task.id)

    pause.hold()
    try:
        return TaskOutcome(task.id, result=await task.execute(), rate_limit_retried=True)
    except Exception as error:
        logger.error("Task %s failed after rate-limit retry: %s", task.id, error)
        return TaskOutcome(task.id, error=error, rate_limit_retried=True)
    finally:
        pause.release()


async def run_tasks(
    tasks: Sequence[TranslationTask[T]],
    limit: int,
    delay_ms: int = 0,
    cancel_token: CancellationToken | None = None,
    pause: RateLimitPause | None = None,
    on_progress: ProgressCallback | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> ScheduleReport[T]:
    """Run tasks with at most ``limit`` in flight.

    Args:
        tasks: Tasks in admission order.
        limit: Maximum number of concurrently running tasks (min 1).
        delay_ms: Wait before admitting each task after the first.
        cancel_token: Stops admission once set.
        pause: Shared rate-limit pause; admission blocks while active.
        on_progress: Called after each completion with the running count
            and a snapshot of active tasks.
        poll_interval: Pause polling interval in seconds.

    Returns:
        Report with one entry per task. Task failures never raise.
    """
    limit = max(1, limit)
    cancel = cancel_token or CancellationToken()
    pause = pause or RateLimitPause()
    outcomes: list[TaskOutcome[T] | None] = [None] * len(tasks)
    active: dict[asyncio.Task[None], ActiveTask] = {}
    completed = 0

    async def execute(index: int, task: TranslationTask[T]) -> None:
        nonlocal completed
        try:
            outcomes[index] = await _attempt(task, pause)
        finally:
            completed += 1
            current = asyncio.current_task()
            if current is not None:
                active.pop(current, None)
            if on_progress is not None:
                on_progress(completed, list(active.values()))

    for index, task in enumerate(tasks):
        if cancel.cancelled:
            break
        if index > 0 and delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
        await pause.wait_clear(poll_interval, cancel)
        if cancel.cancelled:
            break

        handle = asyncio.create_task(execute(index, task))
        active[handle] = task.describe()
        logger.debug("Started task %s (%d active)", task.id, len(active))

        if len(active) >= limit:
            await asyncio.wait(set(active), return_when=asyncio.FIRST_COMPLETED)

    if cancel.cancelled:
        logger.info("Run cancelled; waiting for %d running task(s)", len(active))
    while active:
        await asyncio.wait(set(active))

    return ScheduleReport(outcomes=outcomes, cancelled=cancel.cancelled)
