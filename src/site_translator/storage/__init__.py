# SPDX-License-Identifier: Apache-2.0
"""File-backed persistence for translations, blog posts and settings."""

from site_translator.storage.base import (
    LanguageNotFoundError,
    PostNotFoundError,
    StorageError,
    TranslationRepository,
)
from site_translator.storage.blog import BlogStore
from site_translator.storage.models import (
    BlogPost,
    Language,
    LanguageStats,
    SyncResult,
    TranslationStatus,
)
from site_translator.storage.settings import SettingsStore
from site_translator.storage.translations import TranslationStore

__all__ = [
    # Protocol and exceptions
    "TranslationRepository",
    "StorageError",
    "LanguageNotFoundError",
    "PostNotFoundError",
    # Models
    "Language",
    "LanguageStats",
    "SyncResult",
    "BlogPost",
    "TranslationStatus",
    # Stores
    "TranslationStore",
    "BlogStore",
    "SettingsStore",
]
