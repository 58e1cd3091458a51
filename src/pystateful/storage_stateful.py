"""State container that persists every change to a storage backend."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from pystateful._stream import Stream
from pystateful.codecs import json_codec
from pystateful.config import StorageStatefulConfig
from pystateful.exceptions import StatefulConfigError, StorageWriteError
from pystateful.stateful import Stateful, is_record
from pystateful.storage import StorageBackend, default_storage

_logger = logging.getLogger(__name__)

TState = TypeVar("TState")
TValue = TypeVar("TValue")


class StorageStateful(Generic[TState]):
    """A :class:`~pystateful.stateful.Stateful` mirrored to a key/value store.

    On construction the value stored under ``storage_key`` is decoded and
    adopted as the current state; if nothing is stored yet, the encoded
    default is written immediately. Afterwards every ``set``, ``patch`` and
    ``reset`` writes the encoded snapshot back under the same key.

    Parameters
    ----------
    storage_key : str
        Key owned by this container in the backend.
    default_state : record
        Initial value and reset target. A stored value replaces it as the
        current value, never as the reset target.
    config : StorageStatefulConfig or None
        Codec and backend overrides. Without a ``backend`` the shared
        :func:`~pystateful.storage.default_storage` is used, a JSON file at
        ``.pystateful/storage.json`` relative to the current working
        directory unless ``PYSTATEFUL_STORAGE_PATH`` or
        ``PYSTATEFUL_STORAGE_DIR`` is set.

    Notes
    -----
    Decode and encode failures while loading are absorbed: the default is
    kept as the current state and a warning is logged.
    Encode or backend failures during write-through raise
    :class:`~pystateful.exceptions.StorageWriteError` after the new state
    has already been published.
    """

    def __init__(
        self,
        storage_key: str,
        default_state: TState,
        config: StorageStatefulConfig[TState] | None = None,
    ) -> None:
        if not storage_key:
            raise StatefulConfigError("storage_key must be non-empty")
        if not is_record(default_state):
            raise StatefulConfigError("default_state must be a mapping or a pydantic model")

        config = config or StorageStatefulConfig()
        codec = config.resolve_codec(json_codec(default_state))

        self._storage_key = storage_key
        self._decode = codec.decode
        self._encode = codec.encode
        self._storage: StorageBackend = config.backend if config.backend is not None else default_storage()
        self._stateful: Stateful[TState] = Stateful(default_state, write_through=self._write)

        try:
            if self._storage.get(storage_key):
                self._read()
            else:
                _logger.debug("No stored state for key=%s; writing default", storage_key)
                self._write(default_state)
        except StorageWriteError:
            _logger.warning(
                "Could not write initial state for key=%s; keeping default",
                storage_key,
                exc_info=True,
            )
            # Nothing can have subscribed yet, so a fresh container is safe.
            self._stateful = Stateful(default_state, write_through=self._write)

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def state(self) -> Stream[TState]:
        """Stream of state changes, starting with the current value."""
        return self._stateful.state

    @property
    def completed(self) -> bool:
        return self._stateful.completed

    def observe(self) -> Stream[TState]:
        return self._stateful.observe()

    def complete(self) -> None:
        self._stateful.complete()

    def default(self) -> TState:
        return self._stateful.default()

    def patch(self, partial: Mapping[str, Any] | None = None, /, **fields: Any) -> None:
        self._stateful.patch(partial, **fields)

    def reset(self, default_state: TState | None = None) -> None:
        self._stateful.reset(default_state)

    def select(self, name: str) -> Stream[Any]:
        return self._stateful.select(name)

    def selector(self, selector: Callable[[TState], TValue]) -> Stream[TValue]:
        return self._stateful.selector(selector)

    def set(self, state: TState) -> None:
        """Publish ``state``, then write the resulting snapshot to storage.

        The write runs even when publishing raises.
        """
        self._stateful.set(state)

    def snapshot(self) -> TState:
        return self._stateful.snapshot()

    def _read(self) -> None:
        """Restore the state from storage."""
        item = self._storage.get(self._storage_key)
        if not item:
            return
        try:
            state = self._decode(item)
        except Exception:
            _logger.warning(
                "Could not decode stored state for key=%s; keeping default",
                self._storage_key,
                exc_info=True,
            )
            return
        if not is_record(state):
            _logger.warning(
                "Stored state for key=%s decoded to %s, not a record; keeping default",
                self._storage_key,
                type(state).__name__,
            )
            return
        _logger.debug("Restored state from storage key=%s", self._storage_key)
        self.set(state)

    def _write(self, state: TState) -> None:
        """Persist ``state`` to storage."""
        try:
            item = self._encode(state)
            self._storage.set(self._storage_key, item)
        except Exception as exc:
            raise StorageWriteError(
                f"Failed to persist state for key={self._storage_key}: {exc}",
                storage_key=self._storage_key,
            ) from exc
        _logger.debug("Persisted state key=%s (%d chars)", self._storage_key, len(item))
