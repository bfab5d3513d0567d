# SPDX-License-Identifier: Apache-2.0
"""Markdown blog posts with YAML frontmatter.

Originals live in ``<posts_dir>/<slug>.md``; translations in
``<posts_dir>/translations/<slug>.<lang>.md``.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from site_translator.storage.base import PostNotFoundError, StorageError
from site_translator.storage.models import BlogPost, TranslationStatus
from site_translator.storage.translations import validate_code

logger = logging.getLogger(__name__)

TRANSLATIONS_DIR = "translations"

_FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.MULTILINE | re.DOTALL)

# Frontmatter keys mapped onto BlogPost fields
_KNOWN_KEYS = {
    "title",
    "excerpt",
    "author",
    "publishedAt",
    "updatedAt",
    "tags",
    "featuredImage",
    "published",
    "order",
}


def _plain(value: Any) -> Any:
    # YAML turns unquoted ISO timestamps into datetime objects
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    return value


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a Markdown document into frontmatter and body.

    Raises:
        StorageError: If the frontmatter is not valid YAML.
    """
    match = _FRONTMATTER.match(text)
    if match is None:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise StorageError(f"Invalid frontmatter: {e}") from e
    if not isinstance(data, dict):
        raise StorageError("Frontmatter is not a mapping")
    body = text[match.end():]
    return {str(key): _plain(value) for key, value in data.items()}, body.lstrip("\n")


def render_frontmatter(frontmatter: Mapping[str, Any], content: str) -> str:
    """Serialize frontmatter and body back into a Markdown document."""
    header = yaml.safe_dump(
        {key: value for key, value in frontmatter.items() if value is not None},
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )
    return f"---\n{header}---\n\n{content.rstrip()}\n"


def _order(value: Any, slug: str) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Post %s: ignoring non-numeric order %r", slug, value)
        return 0


def post_from_document(slug: str, text: str, lang: str | None = None) -> BlogPost:
    """Build a BlogPost from Markdown text."""
    data, body = parse_frontmatter(text)
    tags = data.get("tags") or []
    return BlogPost(
        slug=slug,
        title=str(data.get("title") or ""),
        excerpt=str(data.get("excerpt") or ""),
        content=body,
        author=data.get("author"),
        published_at=str(data.get("publishedAt") or ""),
        updated_at=data.get("updatedAt"),
        tags=[str(tag) for tag in tags] if isinstance(tags, list) else [str(tags)],
        featured_image=data.get("featuredImage"),
        published=bool(data.get("published", True)),
        order=_order(data.get("order"), slug),
        lang=lang,
        extra={key: value for key, value in data.items() if key not in _KNOWN_KEYS},
    )


class BlogStore:
    """File-backed blog post store."""

    def __init__(self, posts_dir: str | Path) -> None:
        self._posts_dir = Path(posts_dir)

    @property
    def posts_dir(self) -> Path:
        return self._posts_dir

    @property
    def translations_dir(self) -> Path:
        return self._posts_dir / TRANSLATIONS_DIR

    def _path(self, slug: str, lang: str | None = None) -> Path:
        validate_code(slug)
        if lang:
            return self.translations_dir / f"{slug}.{validate_code(lang)}.md"
        return self._posts_dir / f"{slug}.md"

    def list_posts(self, lang: str | None = None) -> list[BlogPost]:
        """All original posts, newest first.

        Args:
            lang: If given, use the translation where one exists.
        """
        if not self._posts_dir.is_dir():
            return []
        posts = []
        for path in self._posts_dir.glob("*.md"):
            slug = path.stem
            try:
                translated = lang is not None and self._path(slug, lang).exists()
                posts.append(self.read_post(slug, lang if translated else None))
            except StorageError as e:
                logger.warning("Failed to parse blog post %s: %s", slug, e)
        posts.sort(key=lambda post: post.published_at, reverse=True)
        return posts

    def read_post(self, slug: str, lang: str | None = None) -> BlogPost:
        """Read an original post or one of its translations.

        Raises:
            PostNotFoundError: If the file does not exist.
            StorageError: If the file cannot be read or parsed.
        """
        path = self._path(slug, lang)
        if not path.exists():
            raise PostNotFoundError(slug, lang)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        return post_from_document(slug, text, lang)

    def save_post(
        self,
        slug: str,
        frontmatter: Mapping[str, Any],
        content: str,
        lang: str | None = None,
    ) -> Path:
        """Write a post (original when ``lang`` is None, else a translation).

        Returns:
            Path of the written file.
        """
        path = self._path(slug, lang)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(render_frontmatter(frontmatter, content), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.info("Saved post %s%s", slug, f" ({lang})" if lang else "")
        return path

    def delete_translation(self, slug: str, lang: str) -> None:
        path = self._path(slug, lang)
        if not path.exists():
            raise PostNotFoundError(slug, lang)
        path.unlink()

    def translation_status(
        self,
        language_codes: Iterable[str],
    ) -> dict[str, dict[str, TranslationStatus]]:
        """Status of every post's translation for each language.

        A translation is ``outdated`` when its original was modified after it.

        Returns:
            ``{slug: {code: status}}``.
        """
        codes = list(language_codes)
        result: dict[str, dict[str, TranslationStatus]] = {}
        if not self._posts_dir.is_dir():
            return result
        for original in sorted(self._posts_dir.glob("*.md")):
            slug = original.stem
            original_mtime = original.stat().st_mtime
            statuses: dict[str, TranslationStatus] = {}
            for code in codes:
                translated = self._path(slug, code)
                if not translated.exists():
                    statuses[code] = TranslationStatus.MISSING
                elif original_mtime > translated.stat().st_mtime:
                    statuses[code] = TranslationStatus.OUTDATED
                else:
                    statuses[code] = TranslationStatus.OK
            result[slug] = statuses
        return result
