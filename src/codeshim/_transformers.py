"""Concrete transformers implementing the Transformer protocol.

Two streaming disciplines are provided:

- SourceTransformer buffers the whole source and rewrites it once the
  upstream reader is exhausted. The encoding is detected per stream from
  the BOM or the PEP 263 coding cookie, and the output is encoded back
  with the same codec.
- LineTransformer rewrites each complete line as soon as it has been read.
  The codec is detected the same way from the first two lines, then
  decoding is incremental, so multi-byte characters split across chunk
  boundaries are reassembled before a line is handed over.

Regex substitution uses ``google-re2`` for guaranteed linear-time matching.
RE2 does not support backreferences in patterns or lookaround; patterns
using them are rejected at construction time.
"""

from __future__ import annotations

import codecs
import io
import tokenize
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import re2

from codeshim._errors import CodeshimError
from codeshim._stream import FilteredReader

if TYPE_CHECKING:
    from collections.abc import Callable

    from codeshim._types import Filter, Reader


class TransformerError(CodeshimError):
    """A transformer could not be constructed."""


class StreamTransformer(ABC):
    """Base for transformers that attach a fresh Filter to each stream."""

    __slots__ = ()

    name: str

    def attach(self, reader: Reader, /) -> FilteredReader:
        return FilteredReader(reader, self.make_filter())

    @abstractmethod
    def make_filter(self) -> Filter:
        """Create the per-stream filter state."""


class SourceTransformer(StreamTransformer):
    """Rewrites the complete source text in one step at end of stream."""

    __slots__ = ()

    @abstractmethod
    def transform(self, source: str) -> str: ...

    def make_filter(self) -> Filter:
        return _SourceFilter(self.transform)


class LineTransformer(StreamTransformer):
    """Rewrites the source line by line as it streams through."""

    __slots__ = ()

    @abstractmethod
    def transform_line(self, line: str) -> str:
        """Rewrite one line. ``line`` keeps its trailing newline, if any."""

    def make_filter(self) -> Filter:
        return _LineFilter(self.transform_line)


class _SourceFilter:
    def __init__(self, transform: Callable[[str], str]) -> None:
        self._transform = transform
        self._buffer = bytearray()

    def feed(self, data: bytes, /) -> bytes:
        self._buffer += data
        return b""

    def flush(self) -> bytes:
        raw = bytes(self._buffer)
        self._buffer.clear()
        encoding, _ = tokenize.detect_encoding(io.BytesIO(raw).readline)
        return self._transform(raw.decode(encoding)).encode(encoding)


class _LineFilter:
    def __init__(self, transform_line: Callable[[str], str]) -> None:
        self._transform_line = transform_line
        self._head = bytearray()
        self._decoder: codecs.IncrementalDecoder | None = None
        self._encoder: codecs.IncrementalEncoder | None = None
        self._partial = ""

    def feed(self, data: bytes, /) -> bytes:
        if self._decoder is None:
            # The coding cookie may sit on either of the first two lines.
            self._head += data
            if self._head.count(b"\n") < 2:
                return b""
            data = self._start()
        return self._rewrite(data)

    def flush(self) -> bytes:
        out = self._rewrite(self._start()) if self._decoder is None else b""
        tail = self._partial + self._decoder.decode(b"", final=True)
        self._partial = ""
        if tail:
            out += self._emit([tail])
        return out + self._encoder.encode("", final=True)

    def _start(self) -> bytes:
        head = bytes(self._head)
        self._head.clear()
        encoding, _ = tokenize.detect_encoding(io.BytesIO(head).readline)
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._encoder = codecs.getincrementalencoder(encoding)()
        return head

    def _rewrite(self, data: bytes) -> bytes:
        text = self._partial + self._decoder.decode(data)
        head, sep, self._partial = text.rpartition("\n")
        if not sep:
            return b""
        return self._emit([line + "\n" for line in head.split("\n")])

    def _emit(self, lines: list[str]) -> bytes:
        return self._encoder.encode("".join(self._transform_line(line) for line in lines))


@dataclass(frozen=True, slots=True)
class CallableTransformer(SourceTransformer):
    """Apply a plain ``str -> str`` function to the whole source.

    >>> from codeshim import CallableTransformer
    >>> upper = CallableTransformer("upper", str.upper)
    >>> upper.attach(io.BytesIO(b"hello world")).read()
    b'HELLO WORLD'
    """

    name: str
    func: Callable[[str], str]

    def transform(self, source: str) -> str:
        return self.func(source)


@dataclass(frozen=True, slots=True)
class ReplaceTransformer(SourceTransformer):
    """Literal substring replacement over the whole source.

    Works across line boundaries, so ``old`` may span several lines.
    """

    name: str
    old: str
    new: str
    count: int = -1

    def __post_init__(self) -> None:
        if not self.old:
            msg = f"transformer {self.name!r}: 'old' must not be empty"
            raise TransformerError(msg)

    def transform(self, source: str) -> str:
        return source.replace(self.old, self.new, self.count)


@dataclass(frozen=True, slots=True)
class RegexTransformer(LineTransformer):
    """Line-by-line regular expression substitution.

    The pattern is compiled at construction time via ``google-re2``. The
    replacement accepts ``\\1`` and ``\\g<name>`` group references.

    Raises:
        TransformerError: If the pattern is not valid RE2 syntax.
    """

    name: str
    pattern: str
    replacement: str = ""
    _compiled: re2.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            compiled = re2.compile(self.pattern)
        except re2.error as e:
            msg = f'transformer {self.name!r}: invalid regex pattern "{self.pattern}": {e}'
            raise TransformerError(msg) from e
        object.__setattr__(self, "_compiled", compiled)

    def transform_line(self, line: str) -> str:
        return self._compiled.sub(self.replacement, line)
