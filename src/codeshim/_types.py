"""Core protocols and flag vocabularies for codeshim.

The shape follows a stream-wrapper design:
- Reader is the read channel a transformer wraps
- Filter is the per-stream state a transformer feeds bytes through
- Transformer is the named, attachable capability
- StreamHandler is whatever is currently installed for the file protocol
"""

from __future__ import annotations

import enum
import os
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from codeshim._stream import OpenHandle

StrPath: TypeAlias = str | bytes | os.PathLike[str] | os.PathLike[bytes]

# Keyword arguments of open() (buffering, encoding, errors, newline,
# closefd, opener) forwarded to the real open call.
OpenContext: TypeAlias = Mapping[str, Any]


class OpenFlags(enum.IntFlag):
    """Flags describing why a resource is being opened."""

    NONE = 0
    # The resource is opened to be loaded and executed as code.
    OPEN_FOR_INCLUDE = 128


class StreamOption(enum.IntEnum):
    """Options accepted by Interceptor.set_option()."""

    BLOCKING = 1
    READ_BUFFER = 2
    WRITE_BUFFER = 3
    READ_TIMEOUT = 4
    CHUNK_SIZE = 5


@runtime_checkable
class Reader(Protocol):
    """A read channel: returns up to ``size`` bytes, b"" once exhausted."""

    def read(self, size: int = -1, /) -> bytes: ...


@runtime_checkable
class Filter(Protocol):
    """Incremental byte filter owned by a single open stream.

    ``feed`` may hold data back; ``flush`` is called exactly once when the
    upstream reader is exhausted and must return everything still held.
    """

    def feed(self, data: bytes, /) -> bytes: ...

    def flush(self) -> bytes: ...


@runtime_checkable
class Transformer(Protocol):
    """A named streaming rewrite attached to code-load reads.

    The name is the registry key: registering a second transformer under
    the same name replaces the first.
    """

    @property
    def name(self) -> str: ...

    def attach(self, reader: Reader, /) -> Reader: ...


class StreamHandler(Protocol):
    """The handler contract for the file protocol."""

    def open(
        self,
        path: StrPath,
        mode: str = "r",
        flags: OpenFlags = OpenFlags.NONE,
        context: OpenContext | None = None,
    ) -> OpenHandle: ...

    def url_stat(self, path: StrPath, quiet: bool = False) -> os.stat_result | None: ...
