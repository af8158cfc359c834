"""Shared fixtures for codeshim tests.

Every fixture that can install the file protocol shims removes them in
teardown, so a failing test never leaves ``open``/``os.stat`` patched.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from codeshim import FileProtocol, Interceptor, TransformerRegistry


@pytest.fixture
def protocol(tmp_path: Path) -> Iterator[FileProtocol]:
    proto = FileProtocol(import_roots=[tmp_path])
    yield proto
    proto.unregister()


@pytest.fixture
def registry() -> TransformerRegistry:
    return TransformerRegistry()


@pytest.fixture
def interceptor(
    registry: TransformerRegistry, protocol: FileProtocol
) -> Iterator[Interceptor]:
    ic = Interceptor(registry, protocol)
    yield ic
    ic.uninstall()


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A small source file containing ``hello world``."""
    path = tmp_path / "a.src"
    path.write_bytes(b"hello world")
    return path


@pytest.fixture
def module_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """A sys.path entry for throwaway modules, cleaned out of sys.modules."""
    monkeypatch.syspath_prepend(str(tmp_path))
    before = set(sys.modules)
    yield tmp_path
    for name in set(sys.modules) - before:
        if name.startswith("shimmed_"):
            del sys.modules[name]


class ReadRecorder:
    """Reader returning fixed bytes in chunks, recording each request."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.requests: list[int] = []

    def read(self, size: int = -1, /) -> bytes:
        self.requests.append(size)
        if size < 0:
            size = len(self._data)
        chunk, self._data = self._data[:size], self._data[size:]
        return chunk


@pytest.fixture
def recorder_factory() -> type[ReadRecorder]:
    return ReadRecorder
