"""pystateful - Reactive state containers with optional write-through persistence."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pystateful")
except PackageNotFoundError:
    __version__ = "0+local"
from pystateful._stream import Stream, Subscription
from pystateful.codecs import Codec, encrypted_codec, json_codec
from pystateful.config import StorageSettings, StorageStatefulConfig
from pystateful.exceptions import (
    StateCompletedError,
    StateDecodeError,
    StatefulConfigError,
    StatefulCryptoError,
    StatefulError,
    StorageWriteError,
)
from pystateful.stateful import Stateful
from pystateful.storage import (
    FileStorage,
    MemoryStorage,
    StorageBackend,
    default_storage,
    set_default_storage,
)
from pystateful.storage_stateful import StorageStateful

__all__ = [
    "__version__",
    "Codec",
    "FileStorage",
    "MemoryStorage",
    "StateCompletedError",
    "StateDecodeError",
    "Stateful",
    "StatefulConfigError",
    "StatefulCryptoError",
    "StatefulError",
    "StorageBackend",
    "StorageSettings",
    "StorageStateful",
    "StorageStatefulConfig",
    "StorageWriteError",
    "Stream",
    "Subscription",
    "default_storage",
    "encrypted_codec",
    "json_codec",
    "set_default_storage",
]
