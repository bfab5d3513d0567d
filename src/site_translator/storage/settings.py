# SPDX-License-Identifier: Apache-2.0
"""Flat key-value settings persisted as JSON."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from site_translator.storage.base import StorageError
from site_translator.storage.translations import write_json_atomic

logger = logging.getLogger(__name__)


class SettingsStore(Mapping[str, str]):
    """String settings such as ``ai-max-concurrent`` or ``ai-api-key-groq``.

    A missing file reads as empty settings. Changes are kept in memory until
    ``save()``.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._values: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read settings {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Settings file {self._path} is not a JSON object")
        self._values = {str(key): str(value) for key, value in data.items() if value is not None}

    @property
    def path(self) -> Path:
        return self._path

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def save(self) -> None:
        write_json_atomic(self._path, dict(sorted(self._values.items())), indent=2)
        logger.debug("Saved %d setting(s) to %s", len(self._values), self._path)
