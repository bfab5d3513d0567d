# SPDX-License-Identifier: Apache-2.0
"""Per-language JSON translation files.

Each language lives in ``<directory>/<code>.json``::

    {
        "_meta": {"name": "Deutsch", "flag": "🇩🇪"},
        "translations": {"Download": "Herunterladen", ...}
    }

Files are written with 4-space indentation and sorted keys, through a
temporary file that replaces the original, so readers never see a
half-written file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from site_translator.storage.base import LanguageNotFoundError, StorageError
from site_translator.storage.models import Language, LanguageStats, SyncResult

logger = logging.getLogger(__name__)

# File in the translations directory that is not a language
INDEX_FILE = "languages.json"


def validate_code(code: str) -> str:
    """Reject codes that could escape the translations directory.

    Raises:
        StorageError: If the code is empty or contains a path component.
    """
    if not code or ".." in code or "/" in code or "\\" in code:
        raise StorageError(f"Invalid language code: {code!r}")
    return code


def write_json_atomic(path: Path, data: Any, indent: int = 4) -> None:
    """Write JSON to ``path`` via a temp file in the same directory.

    Raises:
        StorageError: If writing fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise StorageError(f"Failed to write {path}: {e}") from e


class TranslationStore:
    """File-backed store of per-language translation maps."""

    def __init__(self, directory: str | Path, base_language: str = "en") -> None:
        """Initialize TranslationStore.

        Args:
            directory: Directory holding ``<code>.json`` files.
            base_language: Code whose values default to the key itself.
        """
        self._directory = Path(directory)
        self._base_language = base_language

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def base_language(self) -> str:
        return self._base_language

    def _path(self, code: str) -> Path:
        return self._directory / f"{validate_code(code)}.json"

    def _load(self, code: str) -> dict[str, Any]:
        path = self._path(code)
        if not path.exists():
            raise LanguageNotFoundError(code)
        try:
            with open(path, encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        if not isinstance(content, dict):
            raise StorageError(f"Unexpected content in {path}")
        return content

    def _save(self, code: str, meta: Mapping[str, Any], translations: Mapping[str, str]) -> None:
        write_json_atomic(
            self._path(code),
            {
                "_meta": dict(meta),
                "translations": {key: translations[key] for key in sorted(translations)},
            },
        )

    def _language_files(self) -> list[Path]:
        if not self._directory.is_dir():
            return []
        return sorted(
            path for path in self._directory.glob("*.json")
            if path.name != INDEX_FILE
        )

    def list_languages(self) -> list[Language]:
        """All languages with a translation file, sorted by code."""
        languages = []
        for path in self._language_files():
            code = path.stem
            try:
                meta = self._load(code).get("_meta") or {}
            except StorageError as e:
                logger.warning("Skipping unreadable language file %s: %s", path.name, e)
                continue
            languages.append(
                Language(code=code, name=meta.get("name") or code, flag=meta.get("flag") or "")
            )
        return sorted(languages, key=lambda language: language.code)

    def get_language(self, code: str) -> Language:
        """Metadata of one language.

        Raises:
            LanguageNotFoundError: If the language does not exist.
        """
        meta = self._load(code).get("_meta") or {}
        return Language(code=code, name=meta.get("name") or code, flag=meta.get("flag") or "")

    def read_language_map(self, code: str) -> dict[str, str]:
        translations = self._load(code).get("translations") or {}
        return {
            str(key): value if isinstance(value, str) else ""
            for key, value in translations.items()
        }

    def update_language_map(self, code: str, partial: Mapping[str, str]) -> None:
        """Overwrite only the keys in ``partial``; ``_meta`` and other keys are kept."""
        content = self._load(code)
        translations = dict(content.get("translations") or {})
        translations.update(partial)
        self._save(code, content.get("_meta") or {}, translations)
        logger.debug("Saved %d key(s) to %s", len(partial), code)

    def create_language(
        self,
        code: str,
        name: str,
        flag: str = "",
        keys: Iterable[str] = (),
    ) -> Language:
        """Create a language file seeded with ``keys``.

        The base language gets each key as its value; others start empty.

        Raises:
            StorageError: If the language already exists.
        """
        path = self._path(code)
        if path.exists():
            raise StorageError(f"Language already exists: {code}")
        is_base = code == self._base_language
        translations = {key: key if is_base else "" for key in keys}
        self._save(code, {"name": name or code, "flag": flag}, translations)
        logger.info("Created language %s (%d keys)", code, len(translations))
        return Language(code=code, name=name or code, flag=flag)

    def update_language_meta(
        self,
        code: str,
        name: str | None = None,
        flag: str | None = None,
    ) -> Language:
        """Change the display name and/or flag of a language."""
        content = self._load(code)
        meta = dict(content.get("_meta") or {})
        meta["name"] = name or meta.get("name") or code
        meta["flag"] = flag if flag is not None else meta.get("flag") or ""
        self._save(code, meta, content.get("translations") or {})
        return Language(code=code, name=meta["name"], flag=meta["flag"])

    def delete_language(self, code: str) -> None:
        """Delete a language file.

        Raises:
            StorageError: For the base language.
            LanguageNotFoundError: If the language does not exist.
        """
        if code == self._base_language:
            raise StorageError(f"Cannot delete the base language ({code})")
        path = self._path(code)
        if not path.exists():
            raise LanguageNotFoundError(code)
        path.unlink()
        logger.info("Deleted language %s", code)

    def sync_keys(self, keys: Iterable[str]) -> SyncResult:
        """Align every language file with ``keys``.

        Missing keys are added (base language: the key itself, others: "");
        keys not in ``keys`` are removed.
        """
        wanted = sorted(set(keys))
        wanted_set = set(wanted)
        result = SyncResult(total=len(wanted))

        for path in self._language_files():
            code = path.stem
            try:
                content = self._load(code)
            except StorageError as e:
                logger.warning("Skipping %s during sync: %s", path.name, e)
                continue
            translations = dict(content.get("translations") or {})
            added = removed = 0
            for key in wanted:
                if key not in translations:
                    translations[key] = key if code == self._base_language else ""
                    added += 1
            for key in list(translations):
                if key not in wanted_set:
                    del translations[key]
                    removed += 1
            if added or removed:
                self._save(code, content.get("_meta") or {}, translations)
                result.files.append(path.name)
                result.added += added
                result.removed += removed

        logger.info(
            "Synced translations: +%d added, -%d removed (%d total keys)",
            result.added,
            result.removed,
            result.total,
        )
        return result

    def stats(self, keys: Iterable[str] | None = None) -> dict[str, LanguageStats]:
        """Coverage per language.

        Args:
            keys: Key set to measure against (default: the base language's keys).

        Returns:
            Stats keyed by language code. A value counts as translated when it
            is non-empty after trimming.
        """
        if keys is None:
            try:
                keys = self.read_language_map(self._base_language).keys()
            except LanguageNotFoundError:
                keys = ()
        key_list = sorted(set(keys))

        stats: dict[str, LanguageStats] = {}
        for path in self._language_files():
            code = path.stem
            try:
                translations = self.read_language_map(code)
            except StorageError:
                stats[code] = LanguageStats(code, len(key_list), 0, list(key_list))
                continue
            missing = [key for key in key_list if not translations.get(key, "").strip()]
            stats[code] = LanguageStats(
                code=code,
                total=len(key_list),
                translated=len(key_list) - len(missing),
                missing=missing,
            )
        return stats
