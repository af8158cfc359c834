"""The file protocol: the handler table for local filesystem access.

Python has no stream-wrapper table, so FileProtocol builds one. On first
registration it patches the platform primitives with dispatching shims:

| Primitive        | Shim dispatches to                                 |
|------------------|----------------------------------------------------|
| builtins.open    | handler.open(path, mode, OpenFlags.NONE, context)  |
| io.open          | (same object as builtins.open)                     |
| io.open_code     | handler.open(path, "rb", OPEN_FOR_INCLUDE)         |
| os.stat          | handler.url_stat(path)                             |

and inserts CodeLoadFinder at the front of ``sys.meta_path``. While the
native default is installed the shims call the captured originals
directly, so restore() is a pointer swap and cannot fail.

The installed handler is process-wide. ``lock`` is held across every
restore/intercept pair, and the shims take it while reading the current
handler, so no thread ever dispatches through another thread's bypass.
"""

from __future__ import annotations

import builtins
import io
import logging
import os
import sys
import threading
from typing import TYPE_CHECKING, Any

from codeshim._errors import CodeshimError
from codeshim._importer import CodeLoadFinder
from codeshim._stream import OpenHandle
from codeshim._types import OpenFlags

if TYPE_CHECKING:
    from collections.abc import Iterable

    from codeshim._types import OpenContext, StrPath, StreamHandler

log = logging.getLogger(__name__)

# Captured once, before any shim can be installed.
_ORIGINAL_OPEN = io.open
_ORIGINAL_OPEN_CODE = io.open_code
_ORIGINAL_STAT = os.stat

_OPEN_DEFAULTS: dict[str, Any] = {
    "buffering": -1,
    "encoding": None,
    "errors": None,
    "newline": None,
    "closefd": True,
    "opener": None,
}

_claim_lock = threading.Lock()
_owner: FileProtocol | None = None


class ProtocolError(CodeshimError):
    """The file protocol handler could not be installed.

    Raised when another FileProtocol, or another tool, already holds the
    patched primitives. This is a startup failure, not a per-call one.
    """


def active_protocol() -> FileProtocol | None:
    """Return the FileProtocol currently holding the patches, if any."""
    return _owner


class NativeHandler:
    """The platform default handler: the original primitives, unwrapped."""

    def __repr__(self) -> str:
        return "NativeHandler()"

    def open(
        self,
        path: StrPath,
        mode: str = "r",
        flags: OpenFlags = OpenFlags.NONE,
        context: OpenContext | None = None,
    ) -> OpenHandle:
        raw = _ORIGINAL_OPEN(path, mode, **(context or {}))
        return OpenHandle(raw, os.fsdecode(path), mode)

    def url_stat(self, path: StrPath, quiet: bool = False) -> os.stat_result | None:
        try:
            return _ORIGINAL_STAT(path)
        except OSError:
            if quiet:
                return None
            raise

    def exists(self, path: StrPath) -> bool:
        return self.url_stat(path, quiet=True) is not None


class FileProtocol:
    """Handler table for the ``file`` protocol."""

    name = "file"

    def __init__(
        self,
        *,
        import_roots: Iterable[StrPath] | None = None,
        import_hook: bool = True,
    ) -> None:
        self.default = NativeHandler()
        self.lock = threading.RLock()
        self._handler: StreamHandler = self.default
        self._finder = CodeLoadFinder(import_roots) if import_hook else None
        self._patched = False

    def __repr__(self) -> str:
        return f"FileProtocol(handler={self.current!r}, registered={self._patched})"

    @property
    def current(self) -> StreamHandler:
        with self.lock:
            return self._handler

    @property
    def is_default(self) -> bool:
        return self.current is self.default

    @property
    def is_registered(self) -> bool:
        """True while the shims are patched into the platform."""
        return self._patched

    @property
    def finder(self) -> CodeLoadFinder | None:
        return self._finder

    def register(self, handler: StreamHandler) -> None:
        """Install ``handler`` as the active handler for the protocol.

        Raises:
            ProtocolError: another owner holds the platform primitives.
        """
        with self.lock:
            if not self._patched:
                self._patch()
            self._handler = handler

    def restore(self) -> None:
        """Reinstall the native default handler."""
        with self.lock:
            self._handler = self.default

    def unregister(self) -> None:
        """Restore the default and remove every shim from the platform."""
        with self.lock:
            self._handler = self.default
            if self._patched:
                self._unpatch()

    # ── Patching ──────────────────────────────────────────────────────────

    def _patch(self) -> None:
        global _owner
        with _claim_lock:
            if _owner is not None and _owner is not self:
                msg = f"file protocol already registered by {_owner!r}"
                raise ProtocolError(msg)
            if (
                builtins.open is not _ORIGINAL_OPEN
                or io.open is not _ORIGINAL_OPEN
                or io.open_code is not _ORIGINAL_OPEN_CODE
                or os.stat is not _ORIGINAL_STAT
            ):
                msg = "file primitives are already patched by another tool"
                raise ProtocolError(msg)
            builtins.open = io.open = self._open
            io.open_code = self._open_code
            os.stat = self._stat
            if self._finder is not None:
                sys.meta_path.insert(0, self._finder)
            _owner = self
            self._patched = True
        log.debug("file protocol shims installed")

    def _unpatch(self) -> None:
        global _owner
        with _claim_lock:
            builtins.open = io.open = _ORIGINAL_OPEN
            io.open_code = _ORIGINAL_OPEN_CODE
            os.stat = _ORIGINAL_STAT
            if self._finder is not None and self._finder in sys.meta_path:
                sys.meta_path.remove(self._finder)
            _owner = None
            self._patched = False
        log.debug("file protocol shims removed")

    # ── Shims ─────────────────────────────────────────────────────────────

    def _open(
        self,
        file: Any,
        mode: str = "r",
        buffering: int = -1,
        encoding: str | None = None,
        errors: str | None = None,
        newline: str | None = None,
        closefd: bool = True,
        opener: Any = None,
    ) -> Any:
        handler = self.current
        if handler is self.default or not isinstance(file, (str, bytes, os.PathLike)):
            return _ORIGINAL_OPEN(
                file, mode, buffering, encoding, errors, newline, closefd, opener
            )
        context = {
            key: value
            for key, value in (
                ("buffering", buffering),
                ("encoding", encoding),
                ("errors", errors),
                ("newline", newline),
                ("closefd", closefd),
                ("opener", opener),
            )
            if value != _OPEN_DEFAULTS[key]
        }
        return handler.open(file, mode, OpenFlags.NONE, context or None).stream

    def _open_code(self, path: str) -> Any:
        handler = self.current
        if handler is self.default:
            return _ORIGINAL_OPEN_CODE(path)
        return handler.open(path, "rb", OpenFlags.OPEN_FOR_INCLUDE).stream

    def _stat(
        self,
        path: Any,
        *,
        dir_fd: int | None = None,
        follow_symlinks: bool = True,
    ) -> os.stat_result:
        handler = self.current
        if (
            handler is self.default
            or dir_fd is not None
            or not follow_symlinks
            or isinstance(path, int)
        ):
            return _ORIGINAL_STAT(path, dir_fd=dir_fd, follow_symlinks=follow_symlinks)
        return handler.url_stat(path)
