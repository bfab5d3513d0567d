# SPDX-License-Identifier: Apache-2.0
"""Blog post translation."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from site_translator.pipeline.chunk_translator import ChunkTranslator
from site_translator.pipeline.progress import ProgressCallback
from site_translator.pipeline.prompts import BLOG_TRANSLATION_PROMPT
from site_translator.pipeline.scheduler import TranslationTask, run_tasks
from site_translator.pipeline.state import RunState, RunStatus, RunSummary, TaskFailure
from site_translator.providers.base import ConfigurationError, MalformedResponseError
from site_translator.storage.blog import BlogStore
from site_translator.storage.models import BlogPost, Language, TranslationStatus

logger = logging.getLogger(__name__)


class TranslatedPost(BaseModel):
    """Model reply for a blog post. Missing fields fall back to the original."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    excerpt: str | None = None
    content: str | None = None


def _now_iso() -> str:
    now = dt.datetime.now(dt.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BlogTranslator:
    """Translates blog posts into a target language and saves them."""

    def __init__(
        self,
        store: BlogStore,
        translator: ChunkTranslator,
        *,
        state: RunState | None = None,
        on_progress: ProgressCallback | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._store = store
        self._translator = translator
        self._state = state or RunState()
        self._on_progress = on_progress
        self._poll_interval = poll_interval

    @property
    def state(self) -> RunState:
        return self._state

    async def translate_post(self, slug: str, language: Language) -> BlogPost:
        """Translate one post and save it as ``translations/<slug>.<code>.md``.

        Raises:
            StorageError: If the original cannot be read or the result saved.
            MalformedResponseError: If the reply is not a usable JSON object.
            TranslationError: On provider errors.
        """
        post = await asyncio.to_thread(self._store.read_post, slug)
        source = {"title": post.title, "excerpt": post.excerpt, "content": post.content}
        result = await self._translator.translate_chunk(
            source, language.display_name, template=BLOG_TRANSLATION_PROMPT
        )
        try:
            translated = TranslatedPost.model_validate(result.translations)
        except ValidationError as e:
            raise MalformedResponseError(f"Unexpected blog translation reply: {e}") from e

        frontmatter: dict[str, Any] = {
            "title": translated.title or post.title,
            "excerpt": translated.excerpt or post.excerpt,
            "author": post.author,
            "publishedAt": post.published_at,
            "updatedAt": _now_iso(),
            "tags": post.tags,
            "featuredImage": post.featured_image,
            "published": post.published,
        }
        content = translated.content or post.content
        await asyncio.to_thread(self._store.save_post, slug, frontmatter, content, language.code)
        return await asyncio.to_thread(self._store.read_post, slug, language.code)

    async def translate_missing(
        self,
        language: Language,
        include_outdated: bool = False,
    ) -> RunSummary:
        """Translate every published post without an up-to-date translation.

        Args:
            language: Target language.
            include_outdated: Also retranslate posts edited after translation.
        """
        config = self._translator.config
        self._state.begin()
        try:
            config.validate()
        except ConfigurationError as e:
            logger.error("Run aborted: %s", e)
            self._state.status = RunStatus.FATAL_ERROR
            return RunSummary(status=RunStatus.FATAL_ERROR, error=str(e))

        wanted = {TranslationStatus.MISSING}
        if include_outdated:
            wanted.add(TranslationStatus.OUTDATED)
        statuses = await asyncio.to_thread(self._store.translation_status, [language.code])
        posts = await asyncio.to_thread(self._store.list_posts)
        slugs = [
            post.slug for post in posts
            if post.published and statuses.get(post.slug, {}).get(language.code) in wanted
        ]
        summary = RunSummary(status=RunStatus.RUNNING)
        if not slugs:
            logger.info("%s: all posts translated", language.code)
            summary.status = RunStatus.COMPLETED
            self._state.status = summary.status
            return summary

        logger.info("%s: translating %d post(s)", language.code, len(slugs))
        self._state.status = RunStatus.RUNNING
        self._state.total_keys = len(slugs)
        tasks = [
            TranslationTask(
                id=f"{language.code}-{slug}",
                execute=lambda slug=slug: self.translate_post(slug, language),
                language=language.code,
            )
            for slug in slugs
        ]
        report = await run_tasks(
            tasks,
            limit=config.max_concurrent,
            delay_ms=config.delay_ms,
            cancel_token=self._state.cancel_token,
            pause=self._state.pause,
            on_progress=self._on_progress,
            poll_interval=self._poll_interval,
        )
        for slug, outcome in zip(slugs, report.outcomes):
            if outcome is None:
                summary.skipped += 1
            elif outcome.error is not None:
                summary.failed += 1
                summary.failures.append(TaskFailure(slug, language.code, str(outcome.error)))
            else:
                summary.succeeded += 1
        self._state.completed_keys = summary.succeeded

        summary.status = RunStatus.CANCELLED if report.cancelled else RunStatus.COMPLETED
        self._state.status = summary.status
        logger.info("%s blog run %s: %s", language.code, summary.status.value, summary.describe())
        return summary
