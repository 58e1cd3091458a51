from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from pystateful.storage import set_default_storage


@pytest.fixture(autouse=True)
def _isolated_default_storage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    # The shared default backend is file-based; keep it out of the working tree.
    monkeypatch.delenv("PYSTATEFUL_STORAGE_PATH", raising=False)
    monkeypatch.setenv("PYSTATEFUL_STORAGE_DIR", str(tmp_path / "default-storage"))
    set_default_storage(None)
    yield
    set_default_storage(None)
