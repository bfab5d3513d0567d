# SPDX-License-Identifier: Apache-2.0
"""Progress callback protocol for translation runs."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ActiveTask:
    """A task currently in flight, for display.

    Attributes:
        task_id: Scheduler task id (e.g. ``"de-2"``).
        language: Language code, if the task belongs to one.
        chunk: Zero-based chunk index, if the task is a chunk.
    """

    task_id: str
    language: str | None = None
    chunk: int | None = None

    def label(self) -> str:
        if self.language is None:
            return self.task_id
        if self.chunk is None:
            return self.language
        return f"{self.language}#{self.chunk + 1}"


@runtime_checkable
class ProgressCallback(Protocol):
    """Progress callback protocol.

    Called after every finished task with the monotonic completion count
    and a snapshot of the tasks still running.
    """

    def __call__(
        self,
        completed: int,
        active_tasks: Sequence[ActiveTask],
    ) -> None: ...
