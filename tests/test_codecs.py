from __future__ import annotations

import pytest
from cryptography.fernet import Fernet
from pydantic import BaseModel

from pystateful.codecs import decode_json, encode_json, encrypted_codec, json_codec
from pystateful.exceptions import StateDecodeError, StatefulConfigError


class _Point(BaseModel):
    x: int
    y: int = 0


def test_encode_json_is_compact() -> None:
    assert encode_json({"name": "Example", "tags": ["a"]}) == '{"name":"Example","tags":["a"]}'


def test_json_codec_decode_falls_back_to_default() -> None:
    default = {"name": "Default"}
    codec = json_codec(default)

    assert codec.decode('{"name":"Stored"}') == {"name": "Stored"}
    assert codec.decode("{oops") is default


def test_json_codec_for_pydantic_models() -> None:
    default = _Point(x=1)
    codec = json_codec(default)

    text = codec.encode(_Point(x=3, y=4))

    assert codec.decode(text) == _Point(x=3, y=4)
    assert codec.decode('{"x": "not a number"}') is default


def test_decode_json_is_strict() -> None:
    with pytest.raises(StateDecodeError):
        decode_json("not json")
    with pytest.raises(StateDecodeError):
        decode_json('{"y": 1}', _Point)


def test_encrypted_codec_hides_plaintext() -> None:
    default = {"secret": "x"}
    codec = encrypted_codec(Fernet.generate_key(), json_codec(default))

    token = codec.encode({"secret": "hunter2"})

    assert "hunter2" not in token
    assert codec.decode(token) == {"secret": "hunter2"}


def test_encrypted_codec_rejects_foreign_token() -> None:
    default = {"secret": "x"}
    writer = encrypted_codec(Fernet.generate_key(), json_codec(default))
    reader = encrypted_codec(Fernet.generate_key().decode("ascii"), json_codec(default))

    with pytest.raises(StateDecodeError):
        reader.decode(writer.encode({"secret": "y"}))


def test_encrypted_codec_rejects_bad_key() -> None:
    with pytest.raises(StatefulConfigError):
        encrypted_codec("too-short", json_codec({}))


def test_json_codec_decode_absorbs_deep_nesting() -> None:
    default = {"a": 1}
    codec = json_codec(default)

    assert codec.decode("[" * 100000) is default
    with pytest.raises(StateDecodeError):
        decode_json("[" * 100000)
