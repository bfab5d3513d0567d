# SPDX-License-Identifier: Apache-2.0
"""Persistence protocol and errors."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from site_translator.storage.models import Language


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class LanguageNotFoundError(StorageError):
    """No translation file exists for the requested language code."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Language not found: {code}")
        self.code = code


class PostNotFoundError(StorageError):
    """No Markdown file exists for the requested blog post."""

    def __init__(self, slug: str, lang: str | None = None) -> None:
        suffix = f" ({lang})" if lang else ""
        super().__init__(f"Post not found: {slug}{suffix}")
        self.slug = slug
        self.lang = lang


@runtime_checkable
class TranslationRepository(Protocol):
    """Storage the batch planner reads maps from and persists chunks to."""

    def list_languages(self) -> list[Language]:
        """All stored languages, sorted by code."""
        ...

    def read_language_map(self, code: str) -> dict[str, str]:
        """Full key -> value map of one language.

        Raises:
            LanguageNotFoundError: If the language does not exist.
            StorageError: If the file cannot be read.
        """
        ...

    def update_language_map(self, code: str, partial: Mapping[str, str]) -> None:
        """Overwrite only the given keys; all other keys stay untouched.

        Raises:
            LanguageNotFoundError: If the language does not exist.
            StorageError: If the file cannot be written.
        """
        ...
