# SPDX-License-Identifier: Apache-2.0
"""Batch planning: split missing keys into chunk jobs and persist results.

Every finished chunk is merged into the in-memory copy of its language's
map and the changed keys are saved immediately, so a cancelled or crashed
run loses at most the chunks still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from site_translator.pipeline.chunk_translator import ChunkTranslator
from site_translator.pipeline.config import ParallelMode, RunConfig
from site_translator.pipeline.errors import PipelineError, PlanningError
from site_translator.pipeline.progress import ActiveTask, ProgressCallback
from site_translator.pipeline.scheduler import ScheduleReport, TranslationTask, run_tasks
from site_translator.pipeline.state import RunState, RunStatus, RunSummary, TaskFailure
from site_translator.providers.base import ConfigurationError
from site_translator.storage.base import StorageError, TranslationRepository
from site_translator.storage.models import Language

logger = logging.getLogger(__name__)


def find_untranslated_keys(translation_map: Mapping[str, str]) -> list[str]:
    """Keys whose value is empty or whitespace only, in map order."""
    return [
        key for key, value in translation_map.items()
        if not isinstance(value, str) or not value.strip()
    ]


def split_into_chunks(entries: Mapping[str, str], chunk_size: int) -> list[dict[str, str]]:
    """Split entries into consecutive chunks of ``chunk_size``.

    ``chunk_size == 0`` (or a set no larger than one chunk) yields a single
    chunk. Order is preserved; an empty input yields no chunks.
    """
    items = list(entries.items())
    if not items:
        return []
    if chunk_size <= 0 or len(items) <= chunk_size:
        return [dict(items)]
    return [
        dict(items[start : start + chunk_size])
        for start in range(0, len(items), chunk_size)
    ]


def collect_known_translations(
    target: Mapping[str, str],
    result: Mapping[str, Any],
) -> dict[str, str]:
    """Pick the non-blank string values of ``result`` whose keys exist in ``target``.

    Keys the model invented are dropped.
    """
    return {
        key: value
        for key, value in result.items()
        if key in target and isinstance(value, str) and value.strip()
    }


def merge_translations(
    target: Mapping[str, str],
    result: Mapping[str, Any],
) -> dict[str, str]:
    """Return ``target`` updated with known keys from ``result``.

    The merged map always has exactly the keys of ``target``.
    """
    merged = dict(target)
    merged.update(collect_known_translations(target, result))
    return merged


@dataclass
class ChunkJob:
    """One chunk of one language."""

    language: Language
    keys_to_translate: dict[str, str]
    chunk_index: int
    total_chunks: int

    @property
    def task_id(self) -> str:
        return f"{self.language.code}-{self.chunk_index}"


@dataclass
class LanguagePlan:
    """All chunk jobs of one language."""

    language: Language
    jobs: list[ChunkJob] = field(default_factory=list)

    @property
    def key_count(self) -> int:
        return sum(len(job.keys_to_translate) for job in self.jobs)


class BatchPlanner:
    """Plans and runs translation of missing keys for one or more languages.

    A planner can be reused for several runs, one at a time. Each run
    re-reads the stored maps and resets the run state.
    """

    def __init__(
        self,
        store: TranslationRepository,
        translator: ChunkTranslator,
        config: RunConfig,
        *,
        source_language: str = "en",
        state: RunState | None = None,
        on_progress: ProgressCallback | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        """Initialize BatchPlanner.

        Args:
            store: Language map storage.
            translator: Chunk translator bound to the run's provider.
            config: Run configuration.
            source_language: Language whose values are sent for translation.
            state: Run state (cancel/pause tokens). Created when None.
            on_progress: Called after every finished scheduler task.
            poll_interval: Pause polling interval in seconds.
        """
        self._store = store
        self._translator = translator
        self._config = config
        self._source_language = source_language
        self._state = state or RunState()
        self._on_progress = on_progress
        self._poll_interval = poll_interval
        self._maps: dict[str, dict[str, str]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def state(self) -> RunState:
        return self._state

    def cancel(self) -> None:
        """Stop admitting new chunks; running chunks finish and are saved."""
        self._state.cancel()

    async def translate_language(self, language: Language) -> RunSummary:
        """Translate the missing keys of one language.

        In the chunk-parallel modes up to ``max_concurrent`` chunks run at
        once and the language lock keeps their writes serialized; otherwise
        chunks run one after another.
        """
        return await self._run([language], single=True)

    async def translate_all(self, languages: Iterable[Language] | None = None) -> RunSummary:
        """Translate missing keys of many languages using the configured mode.

        Args:
            languages: Languages to translate (default: every stored language
                except the source language).
        """
        if languages is None:
            try:
                languages = await asyncio.to_thread(self._store.list_languages)
            except StorageError as e:
                return self._fatal(PlanningError("Failed to list languages", cause=e))
        return await self._run(list(languages), single=False)

    async def _run(self, languages: Sequence[Language], single: bool) -> RunSummary:
        self._state.begin()
        self._maps.clear()
        self._locks.clear()
        try:
            self._config.validate()
            plans = await self._plan(languages)
        except (ConfigurationError, PipelineError) as e:
            return self._fatal(e)

        self._state.total_keys = sum(plan.key_count for plan in plans)
        summary = RunSummary(status=RunStatus.RUNNING)
        if not plans:
            logger.info("Nothing to translate")
            summary.status = RunStatus.COMPLETED
            self._state.status = summary.status
            return summary

        logger.info(
            "Translating %d key(s) in %d chunk(s) across %d language(s)",
            self._state.total_keys,
            sum(len(plan.jobs) for plan in plans),
            len(plans),
        )
        self._state.status = RunStatus.RUNNING
        if single:
            await self._run_chunks(plans[0].jobs, self._single_language_limit(), summary)
        else:
            await self._run_mode(plans, summary)

        summary.status = (
            RunStatus.CANCELLED if self._state.cancel_token.cancelled else RunStatus.COMPLETED
        )
        self._state.status = summary.status
        self._state.active_tasks = []
        logger.info("Run %s: %s", summary.status.value, summary.describe())
        return summary

    def _single_language_limit(self) -> int:
        if self._config.parallel_mode in (ParallelMode.PARALLEL_CHUNKS, ParallelMode.FULL_PARALLEL):
            return self._config.max_concurrent
        return 1

    def _fatal(self, error: Exception) -> RunSummary:
        logger.error("Run aborted: %s", error)
        self._state.status = RunStatus.FATAL_ERROR
        return RunSummary(status=RunStatus.FATAL_ERROR, error=str(error))

    async def _plan(self, languages: Sequence[Language]) -> list[LanguagePlan]:
        try:
            source_map = await asyncio.to_thread(
                self._store.read_language_map, self._source_language
            )
        except StorageError as e:
            raise PlanningError(
                f"Failed to read source language '{self._source_language}'", cause=e
            ) from e

        plans = []
        for language in languages:
            if language.code == self._source_language:
                continue
            try:
                translation_map = await asyncio.to_thread(
                    self._store.read_language_map, language.code
                )
            except StorageError as e:
                raise PlanningError(
                    f"Failed to read language '{language.code}'", cause=e
                ) from e

            missing = find_untranslated_keys(translation_map)
            if not missing:
                logger.debug("%s: all keys translated", language.code)
                continue
            keys_to_translate = {key: source_map.get(key) or key for key in missing}
            chunks = split_into_chunks(keys_to_translate, self._config.chunk_size)
            self._maps[language.code] = dict(translation_map)
            self._locks.setdefault(language.code, asyncio.Lock())
            plans.append(
                LanguagePlan(
                    language=language,
                    jobs=[
                        ChunkJob(language, chunk, index, len(chunks))
                        for index, chunk in enumerate(chunks)
                    ],
                )
            )
            logger.info(
                "%s: %d missing key(s) in %d chunk(s)",
                language.code,
                len(missing),
                len(chunks),
            )
        return plans

    async def _run_mode(self, plans: list[LanguagePlan], summary: RunSummary) -> None:
        mode = self._config.parallel_mode
        limit = self._config.max_concurrent

        if mode is ParallelMode.SEQUENTIAL:
            jobs = [job for plan in plans for job in plan.jobs]
            await self._run_chunks(jobs, 1, summary)
        elif mode is ParallelMode.PARALLEL_LANGUAGES:
            tasks = [
                TranslationTask(
                    id=plan.language.code,
                    execute=lambda plan=plan: self._run_language(plan, summary),
                    language=plan.language.code,
                )
                for plan in plans
            ]
            report = await self._schedule(tasks, limit)
            for index, error in report.errors.items():
                plan = plans[index]
                summary.failed += len(plan.jobs)
                summary.failures.append(
                    TaskFailure(plan.language.code, plan.language.code, str(error))
                )
            summary.skipped += sum(len(plans[index].jobs) for index in report.skipped)
        elif mode is ParallelMode.PARALLEL_CHUNKS:
            for position, plan in enumerate(plans):
                if self._state.cancel_token.cancelled:
                    summary.skipped += sum(len(rest.jobs) for rest in plans[position:])
                    break
                await self._run_chunks(plan.jobs, limit, summary)
        else:
            jobs = [job for plan in plans for job in plan.jobs]
            await self._run_chunks(jobs, limit, summary)

    async def _run_language(self, plan: LanguagePlan, summary: RunSummary) -> None:
        # One language's chunks strictly in order; other languages run beside it
        await self._run_chunks(plan.jobs, 1, summary, report_progress=False)

    async def _run_chunks(
        self,
        jobs: Sequence[ChunkJob],
        limit: int,
        summary: RunSummary,
        report_progress: bool = True,
    ) -> None:
        tasks = [
            TranslationTask(
                id=job.task_id,
                execute=lambda job=job: self._run_job(job),
                language=job.language.code,
                chunk=job.chunk_index,
            )
            for job in jobs
        ]
        report = await self._schedule(tasks, limit, report_progress)
        self._tally(jobs, report, summary)

    async def _schedule(
        self,
        tasks: Sequence[TranslationTask[Any]],
        limit: int,
        report_progress: bool = True,
    ) -> ScheduleReport[Any]:
        return await run_tasks(
            tasks,
            limit=limit,
            delay_ms=self._config.delay_ms,
            cancel_token=self._state.cancel_token,
            pause=self._state.pause,
            on_progress=self._notify if report_progress else None,
            poll_interval=self._poll_interval,
        )

    def _tally(
        self,
        jobs: Sequence[ChunkJob],
        report: ScheduleReport[int],
        summary: RunSummary,
    ) -> None:
        for job, outcome in zip(jobs, report.outcomes):
            if outcome is None:
                summary.skipped += 1
            elif outcome.error is not None:
                summary.failed += 1
                summary.failures.append(
                    TaskFailure(job.task_id, job.language.code, str(outcome.error))
                )
                logger.error(
                    "%s chunk %d/%d failed: %s",
                    job.language.code,
                    job.chunk_index + 1,
                    job.total_chunks,
                    outcome.error,
                )
            else:
                summary.succeeded += 1
                summary.keys_translated += outcome.result or 0

    async def _run_job(self, job: ChunkJob) -> int:
        logger.info(
            "%s: chunk %d/%d (%d keys)",
            job.language.code,
            job.chunk_index + 1,
            job.total_chunks,
            len(job.keys_to_translate),
        )
        result = await self._translator.translate_chunk(
            job.keys_to_translate, job.language.display_name
        )
        return await self._persist(job, result.translations)

    async def _persist(self, job: ChunkJob, translations: Mapping[str, Any]) -> int:
        code = job.language.code
        async with self._locks[code]:
            target = self._maps[code]
            changed = collect_known_translations(target, translations)
            ignored = len(translations) - len(changed)
            if ignored:
                logger.debug("%s: ignored %d unknown or blank key(s)", code, ignored)
            if changed:
                await asyncio.to_thread(self._store.update_language_map, code, changed)
                target.update(changed)
            self._state.completed_keys += len(changed)
        return len(changed)

    def _notify(self, completed: int, active_tasks: Sequence[ActiveTask]) -> None:
        self._state.active_tasks = list(active_tasks)
        if self._on_progress is None:
            return
        self._on_progress(completed, active_tasks)

    def translation_map(self, code: str) -> dict[str, str]:
        """In-memory map of a planned language (after merged chunks)."""
        return dict(self._maps.get(code, {}))
