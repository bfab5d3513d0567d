# SPDX-License-Identifier: Apache-2.0
"""Tests for blog post translation and language info lookup."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from site_translator.pipeline.blog import BlogTranslator
from site_translator.pipeline.chunk_translator import ChunkResult, ChunkTranslator
from site_translator.pipeline.config import RunConfig
from site_translator.pipeline.language_info import describe_language
from site_translator.pipeline.prompts import BLOG_TRANSLATION_PROMPT
from site_translator.pipeline.state import RunStatus
from site_translator.providers import MalformedResponseError, TranslationError
from site_translator.storage import BlogStore, Language, TranslationStatus

POST = """---
title: Hello World
excerpt: First post
author: Jane
publishedAt: '2024-05-01T10:00:00.000Z'
tags:
  - news
featuredImage: /img/hello.png
published: true
---

# Hello

Some **bold** text.
"""

GERMAN = Language("de", "Deutsch")


def make_translator(*results: ChunkResult | Exception) -> MagicMock:
    translator = MagicMock(spec=ChunkTranslator)
    translator.config = RunConfig(provider="groq", api_key="gsk", delay_ms=0)
    translator.translate_chunk = AsyncMock(side_effect=list(results))
    return translator


@pytest.fixture
def blog(tmp_path: Path) -> BlogStore:
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "hello-world.md").write_text(POST, encoding="utf-8")
    (posts / "second.md").write_text(
        "---\ntitle: Second\npublishedAt: '2024-06-01'\n---\nSecond body\n", encoding="utf-8"
    )
    (posts / "draft.md").write_text(
        "---\ntitle: Draft\npublishedAt: '2024-07-01'\npublished: false\n---\nDraft\n",
        encoding="utf-8",
    )
    return BlogStore(posts)


class TestTranslatePost:
    """Test BlogTranslator.translate_post."""

    @pytest.mark.asyncio
    async def test_translates_and_saves(self, blog: BlogStore) -> None:
        translator = make_translator(
            ChunkResult(
                {"title": "Hallo Welt", "excerpt": "Erster Beitrag", "content": "# Hallo\n\nEtwas **fetter** Text."}
            )
        )

        post = await BlogTranslator(blog, translator).translate_post("hello-world", GERMAN)

        source, language_name = translator.translate_chunk.await_args.args
        assert source == {
            "title": "Hello World",
            "excerpt": "First post",
            "content": "# Hello\n\nSome **bold** text.\n",
        }
        assert language_name == "Deutsch"
        assert translator.translate_chunk.await_args.kwargs["template"] == BLOG_TRANSLATION_PROMPT

        assert post.lang == "de"
        assert post.title == "Hallo Welt"
        assert post.content.startswith("# Hallo")
        assert post.author == "Jane"
        assert post.tags == ["news"]
        assert post.featured_image == "/img/hello.png"
        assert post.published_at == "2024-05-01T10:00:00.000Z"
        assert post.updated_at is not None
        assert post.updated_at.endswith("Z")
        assert (blog.translations_dir / "hello-world.de.md").exists()

    @pytest.mark.asyncio
    async def test_missing_fields_fall_back_to_original(self, blog: BlogStore) -> None:
        translator = make_translator(ChunkResult({"title": "Hallo Welt", "extra": 1}))

        post = await BlogTranslator(blog, translator).translate_post("hello-world", GERMAN)

        assert post.title == "Hallo Welt"
        assert post.excerpt == "First post"
        assert "Some **bold** text." in post.content

    @pytest.mark.asyncio
    async def test_wrong_field_type(self, blog: BlogStore) -> None:
        translator = make_translator(ChunkResult({"title": ["not", "a", "string"]}))

        with pytest.raises(MalformedResponseError):
            await BlogTranslator(blog, translator).translate_post("hello-world", GERMAN)

        assert not (blog.translations_dir / "hello-world.de.md").exists()


class TestTranslateMissing:
    """Test BlogTranslator.translate_missing."""

    @pytest.mark.asyncio
    async def test_translates_published_missing_posts(self, blog: BlogStore) -> None:
        translator = make_translator(
            ChunkResult({"title": "Zweiter"}), ChunkResult({"title": "Hallo Welt"})
        )

        summary = await BlogTranslator(blog, translator, poll_interval=0.01).translate_missing(GERMAN)

        assert summary.status is RunStatus.COMPLETED
        assert summary.succeeded == 2
        assert translator.translate_chunk.await_count == 2
        assert blog.translation_status(["de"]) == {
            "draft": {"de": TranslationStatus.MISSING},
            "hello-world": {"de": TranslationStatus.OK},
            "second": {"de": TranslationStatus.OK},
        }

    @pytest.mark.asyncio
    async def test_outdated_only_when_requested(self, blog: BlogStore) -> None:
        for slug in ("hello-world", "second"):
            blog.save_post(slug, {"title": "x"}, "y", "de")
        original = blog.posts_dir / "second.md"
        stamp = (blog.translations_dir / "second.de.md").stat().st_mtime
        os.utime(original, (stamp + 10, stamp + 10))

        translator = make_translator(ChunkResult({"title": "Zweiter"}))
        summary = await BlogTranslator(blog, translator).translate_missing(GERMAN)
        assert summary.succeeded == 0
        translator.translate_chunk.assert_not_called()

        summary = await BlogTranslator(blog, translator).translate_missing(
            GERMAN, include_outdated=True
        )
        assert summary.succeeded == 1
        assert blog.read_post("second", "de").title == "Zweiter"

    @pytest.mark.asyncio
    async def test_failures_are_reported(self, blog: BlogStore) -> None:
        translator = make_translator(
            TranslationError("API error 500: boom"), ChunkResult({"title": "Hallo Welt"})
        )
        translator.config = RunConfig(provider="groq", api_key="gsk", delay_ms=0, max_concurrent=1)

        summary = await BlogTranslator(blog, translator).translate_missing(GERMAN)

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.failures[0].task_id == "second"
        assert "boom" in summary.failures[0].message

    @pytest.mark.asyncio
    async def test_invalid_config_is_fatal(self, blog: BlogStore) -> None:
        translator = make_translator()
        translator.config = RunConfig(provider="groq", api_key="")

        summary = await BlogTranslator(blog, translator).translate_missing(GERMAN)

        assert summary.status is RunStatus.FATAL_ERROR
        assert "API key is required" in (summary.error or "")
        translator.translate_chunk.assert_not_called()


class TestDescribeLanguage:
    """Test describe_language."""

    @staticmethod
    def make(reply: str) -> MagicMock:
        translator = MagicMock(spec=ChunkTranslator)
        translator.complete = AsyncMock(return_value=(reply, 0))
        return translator

    @pytest.mark.asyncio
    async def test_native_name_and_flag(self) -> None:
        translator = self.make('```json\n{"name": " Polski ", "flag": "🇵🇱"}\n```')

        info = await describe_language(translator, "pl", "Polish")

        assert info.name == "Polski"
        assert info.flag == "🇵🇱"
        prompt = translator.complete.await_args.args[0]
        assert '"pl"' in prompt
        assert '"Polish"' in prompt

    @pytest.mark.asyncio
    async def test_flag_is_optional(self) -> None:
        info = await describe_language(self.make('{"name": "Esperanto"}'), "eo")

        assert info.flag == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ['{"name": ""}', '{"flag": "🇵🇱"}', '{"name": "' + "x" * 50 + '"}'])
    async def test_invalid_name(self, reply: str) -> None:
        with pytest.raises(MalformedResponseError):
            await describe_language(self.make(reply), "pl")
