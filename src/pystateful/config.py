"""Configuration for persistent state containers."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pystateful.codecs import Codec
from pystateful.exceptions import StatefulConfigError

if TYPE_CHECKING:
    from pystateful.storage import StorageBackend

TState = TypeVar("TState")

ENV_STORAGE_PATH = "PYSTATEFUL_STORAGE_PATH"
ENV_STORAGE_DIR = "PYSTATEFUL_STORAGE_DIR"

DEFAULT_STORAGE_FILENAME = "storage.json"
DEFAULT_STORAGE_DIR = ".pystateful"


@dataclasses.dataclass(frozen=True)
class StorageSettings:
    """Where the shared default storage backend keeps its data.

    Parameters
    ----------
    storage_path : Path
        JSON file holding every key written through the default backend.
        The default is relative, so it resolves against the current working
        directory of the process.
    """

    storage_path: Path = Path(DEFAULT_STORAGE_DIR) / DEFAULT_STORAGE_FILENAME

    @classmethod
    def from_env(cls, **overrides: Any) -> StorageSettings:
        """Create settings from environment variables.

        ``PYSTATEFUL_STORAGE_PATH`` names the file directly;
        ``PYSTATEFUL_STORAGE_DIR`` names a directory that will hold
        ``storage.json``. The explicit path wins when both are set, and
        keyword arguments override both.
        """
        env = os.environ
        settings_kwargs: dict[str, Any] = {}

        path_env = env.get(ENV_STORAGE_PATH)
        dir_env = env.get(ENV_STORAGE_DIR)
        if path_env:
            settings_kwargs["storage_path"] = Path(path_env)
        elif dir_env:
            settings_kwargs["storage_path"] = Path(dir_env) / DEFAULT_STORAGE_FILENAME

        settings_kwargs.update(overrides)
        if "storage_path" in settings_kwargs:
            settings_kwargs["storage_path"] = Path(settings_kwargs["storage_path"])
        return cls(**settings_kwargs)


@dataclasses.dataclass(frozen=True)
class StorageStatefulConfig(Generic[TState]):
    """Optional overrides for :class:`~pystateful.storage_stateful.StorageStateful`.

    Every field defaults independently; ``None`` means "use the default".

    Parameters
    ----------
    decode : callable or None
        Converts a stored string into a state record.
    encode : callable or None
        Converts a state record into the stored string.
    backend : StorageBackend or None
        Key/value store; defaults to the shared file-backed store.
    codec : Codec or None
        Supplies ``decode``/``encode`` when those fields are left unset.
    """

    decode: Callable[[str], TState] | None = None
    encode: Callable[[TState], str] | None = None
    backend: StorageBackend | None = None
    codec: Codec[TState] | None = None

    def resolve_codec(self, fallback: Codec[TState]) -> Codec[TState]:
        """Combine the explicit functions, ``codec`` and ``fallback``."""
        base = self.codec or fallback
        decode = self.decode or base.decode
        encode = self.encode or base.encode
        if not callable(decode) or not callable(encode):
            raise StatefulConfigError("decode and encode must be callables")
        return Codec(decode=decode, encode=encode)
