"""Codecs converting state records to and from their stored string form.

The default codec is compact JSON. Pydantic states round-trip through
``model_dump_json`` / ``model_validate_json`` so field types survive a
reload. :func:`encrypted_codec` wraps any codec with Fernet encryption.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel

from pystateful.exceptions import StateDecodeError, StatefulConfigError, StatefulCryptoError

_logger = logging.getLogger(__name__)

TState = TypeVar("TState")


@dataclass(frozen=True)
class Codec(Generic[TState]):
    """A ``decode``/``encode`` function pair."""

    decode: Callable[[str], TState]
    encode: Callable[[TState], str]


def encode_json(state: Any) -> str:
    """Serialize a state record as compact JSON."""
    if isinstance(state, BaseModel):
        return state.model_dump_json()
    if isinstance(state, Mapping):
        state = dict(state)
    return json.dumps(state, separators=(",", ":"))


def decode_json(text: str, model: type[BaseModel] | None = None) -> Any:
    """Strict inverse of :func:`encode_json`.

    Raises
    ------
    StateDecodeError
        If ``text`` is not valid JSON or does not validate against ``model``.
    """
    try:
        if model is not None:
            return model.model_validate_json(text)
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        # pydantic.ValidationError and json.JSONDecodeError are both ValueErrors;
        # deeply nested input exhausts the recursion limit.
        raise StateDecodeError(f"Stored state is not decodable: {exc}") from exc


def json_codec(default_state: TState) -> Codec[TState]:
    """Build the default codec for containers whose default is ``default_state``.

    Decoding never raises: malformed input yields ``default_state``.
    """
    model = type(default_state) if isinstance(default_state, BaseModel) else None

    def decode(text: str) -> TState:
        try:
            return decode_json(text, model)
        except StateDecodeError:
            _logger.debug("Falling back to default state; stored value is malformed", exc_info=True)
            return default_state

    return Codec(decode=decode, encode=encode_json)


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a url-safe base64 32-byte key."""
    key_bytes = key.encode("utf-8") if isinstance(key, str) else key
    try:
        return Fernet(key_bytes)
    except (TypeError, ValueError) as exc:
        raise StatefulConfigError("Encryption key must be a url-safe base64-encoded 32-byte key") from exc


def encrypted_codec(fernet_key: str | bytes, inner: Codec[TState]) -> Codec[TState]:
    """Wrap ``inner`` so stored values are Fernet tokens.

    Parameters
    ----------
    fernet_key : str or bytes
        Key as produced by ``cryptography.fernet.Fernet.generate_key()``.
    inner : Codec
        Codec for the plaintext, usually :func:`json_codec`.

    Raises
    ------
    StatefulConfigError
        If the key is unusable.
    """
    fernet = _to_fernet(fernet_key)

    def encode(state: TState) -> str:
        plaintext = inner.encode(state)
        try:
            return fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")
        except Exception as exc:
            raise StatefulCryptoError(f"State encryption failed: {exc}") from exc

    def decode(text: str) -> TState:
        try:
            plaintext = fernet.decrypt(text.encode("utf-8"))
        except InvalidToken as exc:
            raise StateDecodeError("Failed to decrypt state: invalid Fernet token") from exc
        return inner.decode(plaintext.decode("utf-8"))

    return Codec(decode=decode, encode=encode)
