"""Key/value storage backends used for write-through persistence.

A backend only needs synchronous, string-keyed ``get`` and ``set``.
:class:`FileStorage` is the durable default: a single JSON object file
holding every key, shared by all containers in the process through
:func:`default_storage`.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from pystateful.config import StorageSettings
from pystateful.exceptions import StorageWriteError

_logger = logging.getLogger(__name__)


@runtime_checkable
class StorageBackend(Protocol):
    """Synchronous string key/value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Process-local dict-backed storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)


class FileStorage:
    """Storage kept in one JSON file: ``{key: value, ...}``.

    - Loaded lazily on first access.
    - Rewritten in full on every ``set``/``remove``/``clear``.
    - A missing, corrupt or non-object file is treated as empty.
    """

    def __init__(self, path: os.PathLike[str] | str) -> None:
        self._path = Path(path)
        self._data: dict[str, str] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        self._ensure_loaded()
        return key in self._data

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError):
            _logger.warning("Ignoring unreadable storage file %s", self._path, exc_info=True)
            return
        if not isinstance(raw, dict):
            _logger.warning("Ignoring storage file %s: top-level value is not an object", self._path)
            return
        self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        """Write ``data`` to disk, then make it the cached view."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(f"{self._path.name}.tmp")
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            tmp_path.replace(self._path)
        except OSError as exc:
            raise StorageWriteError(f"Failed to write storage file {self._path}: {exc}") from exc
        self._data = data

    def get(self, key: str) -> str | None:
        self._ensure_loaded()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._ensure_loaded()
        self._save({**self._data, key: str(value)})

    def remove(self, key: str) -> None:
        self._ensure_loaded()
        if key in self._data:
            self._save({k: v for k, v in self._data.items() if k != key})

    def clear(self) -> None:
        self._loaded = True
        self._save({})

    def keys(self) -> list[str]:
        self._ensure_loaded()
        return list(self._data)


_default_storage: StorageBackend | None = None


def default_storage() -> StorageBackend:
    """The process-wide backend used when none is configured.

    Created on first use from :meth:`StorageSettings.from_env`.
    """
    global _default_storage
    if _default_storage is None:
        settings = StorageSettings.from_env()
        _logger.debug("Using file storage at %s", settings.storage_path)
        _default_storage = FileStorage(settings.storage_path)
    return _default_storage


def set_default_storage(backend: StorageBackend | None) -> None:
    """Replace the process-wide backend; ``None`` re-reads the environment on next use."""
    global _default_storage
    _default_storage = backend
