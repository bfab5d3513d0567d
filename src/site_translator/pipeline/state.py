# SPDX-License-Identifier: Apache-2.0
"""Run state and summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from site_translator.pipeline.progress import ActiveTask
from site_translator.pipeline.scheduler import CancellationToken, RateLimitPause


class RunStatus(str, Enum):
    """Lifecycle of a translation run.

    IDLE -> PLANNING -> RUNNING -> COMPLETED | CANCELLED | FATAL_ERROR
    """

    IDLE = "idle"
    PLANNING = "planning"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FATAL_ERROR = "fatal_error"

    @property
    def finished(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.CANCELLED, RunStatus.FATAL_ERROR)


@dataclass
class RunState:
    """Mutable, in-memory state of the current run. Never persisted."""

    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    pause: RateLimitPause = field(default_factory=RateLimitPause)
    status: RunStatus = RunStatus.IDLE
    completed_keys: int = 0
    total_keys: int = 0
    active_tasks: list[ActiveTask] = field(default_factory=list)

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def begin(self) -> None:
        """Reset counters for a new run and enter PLANNING.

        The cancel token and pause are replaced only when the previous run
        has finished, so a cancel requested before the first run still holds.
        """
        if self.status.finished:
            self.cancel_token = CancellationToken()
            self.pause = RateLimitPause()
        self.status = RunStatus.PLANNING
        self.completed_keys = 0
        self.total_keys = 0
        self.active_tasks = []


@dataclass(frozen=True)
class TaskFailure:
    """Diagnostic for one failed chunk or post."""

    task_id: str
    language: str | None
    message: str


@dataclass
class RunSummary:
    """Tally returned by every run, whatever its outcome."""

    status: RunStatus
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    keys_translated: int = 0
    failures: list[TaskFailure] = field(default_factory=list)
    error: str | None = None

    @property
    def cancelled(self) -> bool:
        return self.status is RunStatus.CANCELLED

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.status is RunStatus.FATAL_ERROR:
            return f"Run failed: {self.error}"
        text = (
            f"{self.keys_translated} key(s) translated, "
            f"{self.succeeded} task(s) succeeded, {self.failed} failed"
        )
        if self.cancelled:
            text += f", {self.skipped} skipped (stopped early)"
        return text
