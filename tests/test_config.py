from __future__ import annotations

from pathlib import Path

import pytest

from pystateful.codecs import Codec, json_codec
from pystateful.config import StorageSettings, StorageStatefulConfig
from pystateful.exceptions import StatefulConfigError


def test_settings_from_env_prefers_explicit_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PYSTATEFUL_STORAGE_DIR", str(tmp_path / "dir"))
    monkeypatch.setenv("PYSTATEFUL_STORAGE_PATH", str(tmp_path / "explicit.json"))

    assert StorageSettings.from_env().storage_path == tmp_path / "explicit.json"


def test_settings_from_env_uses_directory(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PYSTATEFUL_STORAGE_DIR", str(tmp_path))
    assert StorageSettings.from_env().storage_path == tmp_path / "storage.json"


def test_settings_defaults_and_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PYSTATEFUL_STORAGE_DIR", raising=False)
    monkeypatch.delenv("PYSTATEFUL_STORAGE_PATH", raising=False)

    assert StorageSettings.from_env().storage_path == Path(".pystateful") / "storage.json"
    assert StorageSettings.from_env(storage_path="other.json").storage_path == Path("other.json")


def test_resolve_codec_falls_back_field_by_field() -> None:
    fallback = json_codec({"a": 1})
    config: StorageStatefulConfig[dict[str, int]] = StorageStatefulConfig(encode=lambda _: "custom")

    codec = config.resolve_codec(fallback)

    assert codec.encode({"a": 2}) == "custom"
    assert codec.decode('{"a":3}') == {"a": 3}


def test_resolve_codec_uses_codec_field() -> None:
    custom = Codec(decode=lambda _: {"from": "custom"}, encode=lambda _: "custom")
    codec = StorageStatefulConfig(codec=custom).resolve_codec(json_codec({}))
    assert codec.decode("x") == {"from": "custom"}
    assert codec.encode({}) == "custom"


def test_resolve_codec_rejects_non_callables() -> None:
    config = StorageStatefulConfig(decode="nope")  # type: ignore[arg-type]
    with pytest.raises(StatefulConfigError):
        config.resolve_codec(json_codec({}))
