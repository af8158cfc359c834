"""Read channels: filtered readers and the open handle.

FilteredReader is the building block transformers attach with. Chaining
is plain composition, each reader pulling from the one below it:

    raw file -> FilteredReader(T1) -> FilteredReader(T2) -> caller

so the caller sees T2(T1(raw)).
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codeshim._types import Filter, Reader

DEFAULT_CHUNK_SIZE = 8192


class FilteredReader:
    """Reader that routes upstream bytes through a Filter.

    Output is produced incrementally: each pull reads one chunk from
    upstream and feeds it to the filter. When upstream is exhausted the
    filter is flushed once and the reader reports exhaustion after the
    pending output has been consumed.
    """

    def __init__(
        self,
        upstream: Reader,
        filter_: Filter,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.upstream = upstream
        self.filter = filter_
        self.chunk_size = chunk_size
        self._pending = bytearray()
        self._upstream_done = False

    @property
    def exhausted(self) -> bool:
        return self._upstream_done and not self._pending

    def read(self, size: int = -1, /) -> bytes:
        if size is None or size < 0:
            while not self._upstream_done:
                self._pull()
            data = bytes(self._pending)
            self._pending.clear()
            return data

        while len(self._pending) < size and not self._upstream_done:
            self._pull()
        data = bytes(self._pending[:size])
        del self._pending[:size]
        return data

    def close(self) -> None:
        close = getattr(self.upstream, "close", None)
        if close is not None:
            close()

    def _pull(self) -> None:
        chunk = self.upstream.read(self.chunk_size)
        if chunk:
            self._pending += self.filter.feed(chunk)
        else:
            self._pending += self.filter.flush()
            self._upstream_done = True


class OpenHandle:
    """One resource opened for a single logical access.

    Owns the real file object and, for code-load accesses, the head of
    the transformer chain. Closing is delegated to the real file object.
    """

    def __init__(
        self,
        raw: Any,
        path: str,
        mode: str,
        reader: Reader | None = None,
    ) -> None:
        self.raw = raw
        self.path = path
        self.mode = mode
        self._reader = reader
        self._eof = False

    def __repr__(self) -> str:
        return (
            f"OpenHandle(path={self.path!r}, mode={self.mode!r}, "
            f"transformed={self.transformed})"
        )

    @property
    def transformed(self) -> bool:
        """True when reads pass through a transformer chain."""
        return self._reader is not None

    @property
    def reader(self) -> Reader:
        return self._reader if self._reader is not None else self.raw

    @property
    def closed(self) -> bool:
        return self.raw.closed

    @property
    def stream(self) -> Any:
        """The file object handed back to callers of the patched primitives.

        Untransformed handles hand back the real file object untouched.
        Transformed handles are wrapped in a buffered binary reader.
        """
        if self._reader is None:
            return self.raw
        return io.BufferedReader(_HandleIO(self))

    def read(self, size: int = -1) -> Any:
        data = self.reader.read(size)
        if data is None:
            return None
        if size is None or size < 0 or len(data) < size:
            self._eof = True
        return data

    def eof(self) -> bool:
        """True once a read came back short, i.e. no data is left."""
        return self._eof

    def fileno(self) -> int:
        return self.raw.fileno()

    def chunk_sizes(self) -> list[int]:
        return [r.chunk_size for r in self._filtered_readers()]

    def set_chunk_size(self, size: int) -> bool:
        """Set the upstream pull size of every filtered reader in the chain."""
        if size <= 0:
            return False
        readers = self._filtered_readers()
        for r in readers:
            r.chunk_size = size
        return bool(readers)

    def close(self) -> None:
        self.raw.close()

    def __enter__(self) -> OpenHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _filtered_readers(self) -> list[FilteredReader]:
        readers = []
        r = self._reader
        while isinstance(r, FilteredReader):
            readers.append(r)
            r = r.upstream
        return readers


class _HandleIO(io.RawIOBase):
    """Raw binary adapter so a transformed handle can be buffered."""

    def __init__(self, handle: OpenHandle) -> None:
        super().__init__()
        self._handle = handle
        self.name = handle.path
        self.mode = "rb"

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        data = self._handle.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n

    def fileno(self) -> int:
        return self._handle.fileno()

    def close(self) -> None:
        if not self.closed:
            self._handle.close()
        super().close()
