# SPDX-License-Identifier: Apache-2.0
"""Pipeline error definitions."""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    def __init__(
        self,
        message: str,
        stage: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.args[0]}"
        if self.cause is not None:
            text += f" (caused by: {self.cause})"
        return text


class PlanningError(PipelineError):
    """A language or post could not be loaded while planning a run."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message, stage="plan", cause=cause)
