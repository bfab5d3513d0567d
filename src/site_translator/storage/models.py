# SPDX-License-Identifier: Apache-2.0
"""Data models for stored translations and blog posts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Language:
    """A target language.

    Attributes:
        code: Unique code, also the file stem (e.g. ``"de"``, ``"zh-CN"``).
        name: Display name (native form, e.g. ``"Deutsch"``).
        flag: Flag emoji.
    """

    code: str
    name: str = ""
    flag: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.code


@dataclass
class LanguageStats:
    """Translation coverage of one language against a key set."""

    code: str
    total: int
    translated: int
    missing: list[str] = field(default_factory=list)

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return 100.0 * self.translated / self.total


@dataclass
class SyncResult:
    """Outcome of syncing every language file to a key set."""

    added: int = 0
    removed: int = 0
    total: int = 0
    files: list[str] = field(default_factory=list)


class TranslationStatus(str, Enum):
    """State of a blog post translation relative to its original."""

    MISSING = "missing"
    OK = "ok"
    OUTDATED = "outdated"


@dataclass
class BlogPost:
    """A blog post (original or translation) parsed from Markdown."""

    slug: str
    title: str = ""
    excerpt: str = ""
    content: str = ""
    author: str | None = None
    published_at: str = ""
    updated_at: str | None = None
    tags: list[str] = field(default_factory=list)
    featured_image: str | None = None
    published: bool = True
    order: int = 0
    lang: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
