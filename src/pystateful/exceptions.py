"""Custom exception hierarchy for pystateful."""

from __future__ import annotations


class StatefulError(Exception):
    """Base exception for all pystateful errors."""


class StatefulConfigError(StatefulError):
    """Invalid or missing configuration."""


class StateCompletedError(StatefulError):
    """A mutation was attempted after the state stream was completed.

    ``complete()`` is a one-way transition. Values set afterwards would never
    reach an observer, so they are rejected instead of silently dropped.
    """


class StateDecodeError(StatefulError):
    """A stored value could not be converted back into a state record."""


class StatefulCryptoError(StatefulError):
    """Encryption or decryption failure."""


class StorageWriteError(StatefulError):
    """Write-through to the storage backend failed.

    The in-memory state has already been published when this is raised,
    so memory and storage may disagree until the next successful write.
    """

    def __init__(self, message: str, *, storage_key: str = "") -> None:
        self.storage_key = storage_key
        super().__init__(message)
