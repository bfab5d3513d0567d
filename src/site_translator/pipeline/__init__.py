# SPDX-License-Identifier: Apache-2.0
"""Translation run orchestration package."""

from .blog import BlogTranslator
from .chunk_translator import ChunkResult, ChunkTranslator
from .config import ParallelMode, RunConfig
from .errors import PipelineError, PlanningError
from .language_info import LanguageInfo, describe_language
from .planner import BatchPlanner, ChunkJob, find_untranslated_keys, split_into_chunks
from .progress import ActiveTask, ProgressCallback
from .scheduler import (
    CancellationToken,
    RateLimitPause,
    ScheduleReport,
    TranslationTask,
    run_tasks,
)
from .state import RunState, RunStatus, RunSummary

__all__ = [
    "ActiveTask",
    "BatchPlanner",
    "BlogTranslator",
    "CancellationToken",
    "ChunkJob",
    "ChunkResult",
    "ChunkTranslator",
    "LanguageInfo",
    "ParallelMode",
    "PipelineError",
    "PlanningError",
    "ProgressCallback",
    "RateLimitPause",
    "RunConfig",
    "RunState",
    "RunStatus",
    "RunSummary",
    "ScheduleReport",
    "TranslationTask",
    "describe_language",
    "find_untranslated_keys",
    "run_tasks",
    "split_into_chunks",
]
