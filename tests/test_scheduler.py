# SPDX-License-Identifier: Apache-2.0
"""Tests for the bounded-concurrency scheduler."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from site_translator.pipeline.progress import ActiveTask
from site_translator.pipeline.scheduler import (
    CancellationToken,
    RateLimitPause,
    TranslationTask,
    is_rate_limit_error,
    run_tasks,
)
from site_translator.providers import EmptyResponseError, RateLimitError, TranslationError


class Tracker:
    """Counts how many tasks run at once."""

    def __init__(self) -> None:
        self.running = 0
        self.peak = 0

    def task(self, value: int, duration: float = 0.01) -> TranslationTask[int]:
        async def execute() -> int:
            self.running += 1
            self.peak = max(self.peak, self.running)
            try:
                await asyncio.sleep(duration)
            finally:
                self.running -= 1
            return value

        return TranslationTask(id=f"t-{value}", execute=execute)


class TestActiveTask:
    """Test progress labels."""

    def test_labels(self) -> None:
        assert ActiveTask("de-0", "de", 0).label() == "de#1"
        assert ActiveTask("fr", "fr").label() == "fr"
        assert ActiveTask("post:hello").label() == "post:hello"


class TestRateLimitPause:
    """Test the counted pause."""

    def test_holds_stack(self) -> None:
        pause = RateLimitPause()
        pause.hold()
        pause.hold()
        pause.release()
        assert pause.active
        pause.release()
        assert not pause.active
        pause.release()
        assert not pause.active

    @pytest.mark.asyncio
    async def test_wait_clear_returns_on_cancel(self) -> None:
        pause = RateLimitPause()
        pause.hold()
        token = CancellationToken()
        token.cancel()

        await asyncio.wait_for(pause.wait_clear(0.01, token), timeout=1)

        assert pause.active


class TestIsRateLimitError:
    """Test rate-limit detection."""

    def test_detection(self) -> None:
        assert is_rate_limit_error(RateLimitError("slow down"))
        assert is_rate_limit_error(TranslationError("API error 429: quota"))
        assert not is_rate_limit_error(TranslationError("API error 500"))

    def test_429_elsewhere_in_message_is_not_a_rate_limit(self) -> None:
        assert not is_rate_limit_error(EmptyResponseError(429))
        assert not is_rate_limit_error(TranslationError("API error 500: request id 84291"))
        assert not is_rate_limit_error(TranslationError("API error 4290"))

    @pytest.mark.asyncio
    async def test_empty_response_with_429_keys_is_not_retried(self) -> None:
        calls = 0
        pause = RateLimitPause()
        pause_seen: list[bool] = []

        async def empty() -> str:
            nonlocal calls
            calls += 1
            pause_seen.append(pause.active)
            raise EmptyResponseError(429)

        report = await run_tasks([TranslationTask("t", empty)], limit=1, pause=pause)

        outcome = report.outcomes[0]
        assert outcome is not None
        assert calls == 1
        assert pause_seen == [False]
        assert not outcome.rate_limit_retried
        assert isinstance(outcome.error, EmptyResponseError)


class TestRunTasks:
    """Test run_tasks."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 3])
    async def test_concurrency_bound(self, limit: int) -> None:
        tracker = Tracker()
        tasks = [tracker.task(i) for i in range(8)]

        report = await run_tasks(tasks, limit=limit)

        assert tracker.peak == limit
        assert report.results == {i: i for i in range(8)}
        assert not report.cancelled
        assert report.skipped == []

    @pytest.mark.asyncio
    async def test_results_are_positional(self) -> None:
        """Results keep task order even when later tasks finish first."""
        tracker = Tracker()
        tasks = [tracker.task(0, 0.05), tracker.task(1, 0.0), tracker.task(2, 0.01)]

        report = await run_tasks(tasks, limit=3)

        assert [o.result for o in report.outcomes if o is not None] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_failures_are_recorded_not_raised(self) -> None:
        calls = 0

        async def broken() -> int:
            nonlocal calls
            calls += 1
            raise TranslationError("API error 500: boom")

        async def fine() -> int:
            return 7

        report = await run_tasks(
            [TranslationTask("bad", broken), TranslationTask("good", fine)], limit=2
        )

        assert calls == 1
        assert str(report.errors[0]) == "API error 500: boom"
        assert report.results == {1: 7}
        assert not report.outcomes[0].succeeded

    @pytest.mark.asyncio
    async def test_rate_limit_retried_once_inline(self) -> None:
        attempts = 0

        async def flaky() -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise TranslationError("API error 429: Too Many Requests")
            return "ok"

        report = await run_tasks([TranslationTask("t", flaky)], limit=1, poll_interval=0.01)

        outcome = report.outcomes[0]
        assert outcome is not None
        assert outcome.result == "ok"
        assert outcome.rate_limit_retried
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_rate_limit_twice_fails(self) -> None:
        async def limited() -> str:
            raise RateLimitError("Rate limit exceeded after 3 retries")

        pause = RateLimitPause()
        report = await run_tasks([TranslationTask("t", limited)], limit=1, pause=pause)

        assert isinstance(report.errors[0], RateLimitError)
        assert report.outcomes[0].rate_limit_retried
        assert not pause.active

    @pytest.mark.asyncio
    async def test_pause_blocks_admission(self) -> None:
        """No new task starts while another task retries after a rate limit."""
        events: list[str] = []
        attempts = 0

        async def limited_first() -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RateLimitError("429")
            await asyncio.sleep(0.1)
            events.append("retry-done")
            return "a"

        async def other() -> str:
            events.append("other-start")
            return "b"

        report = await run_tasks(
            [TranslationTask("a", limited_first), TranslationTask("b", other)],
            limit=3,
            delay_ms=20,
            poll_interval=0.01,
        )

        assert events == ["retry-done", "other-start"]
        assert report.results == {0: "a", 1: "b"}

    @pytest.mark.asyncio
    async def test_cancel_stops_admission(self) -> None:
        token = CancellationToken()
        started: list[str] = []

        def make(name: str) -> TranslationTask[str]:
            async def execute() -> str:
                started.append(name)
                if name == "t0":
                    token.cancel()
                await asyncio.sleep(0.01)
                return name

            return TranslationTask(name, execute)

        report = await run_tasks(
            [make(f"t{i}") for i in range(4)], limit=1, cancel_token=token
        )

        assert started == ["t0"]
        assert report.cancelled
        assert report.results == {0: "t0"}
        assert report.skipped == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_running_tasks_finish_after_cancel(self) -> None:
        token = CancellationToken()
        tracker = Tracker()

        async def canceller() -> int:
            token.cancel()
            return -1

        tasks = [tracker.task(0, 0.05), TranslationTask("c", canceller), tracker.task(2)]
        report = await run_tasks(tasks, limit=3, delay_ms=10, cancel_token=token)

        assert report.results == {0: 0, 1: -1}
        assert report.skipped == [2]

    @pytest.mark.asyncio
    async def test_delay_between_admissions(self) -> None:
        tracker = Tracker()
        loop = asyncio.get_running_loop()
        start = loop.time()

        await run_tasks([tracker.task(i, 0) for i in range(3)], limit=3, delay_ms=50)

        assert loop.time() - start >= 0.09

    @pytest.mark.asyncio
    async def test_progress_callback(self) -> None:
        calls: list[tuple[int, list[str]]] = []

        def on_progress(completed: int, active: Sequence[ActiveTask]) -> None:
            calls.append((completed, [a.task_id for a in active]))

        tracker = Tracker()
        await run_tasks([tracker.task(i) for i in range(4)], limit=2, on_progress=on_progress)

        assert [c[0] for c in calls] == [1, 2, 3, 4]
        assert calls[-1][1] == []

    @pytest.mark.asyncio
    async def test_empty_task_list(self) -> None:
        report = await run_tasks([], limit=3)

        assert report.outcomes == []
        assert report.results == {}
