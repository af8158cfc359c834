"""Load interceptor: the handler that rewrites code as it is loaded.

State machine (initial state BYPASSED):

    BYPASSED --intercept()--> ACTIVE
    ACTIVE   --restore()----> BYPASSED

Any operation that itself needs the protocol (the real open, the real
stat) would re-enter the interceptor if it ran while ACTIVE. Those run
inside ``bypassed()``, which restores the native handler and reinstalls
the interceptor on every exit path, errors included.

INV: a public operation never returns with the interceptor BYPASSED.
"""

from __future__ import annotations

import enum
import errno
import io
import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from codeshim._errors import ResourceNotFoundError
from codeshim._protocol import FileProtocol
from codeshim._registry import TransformerRegistry
from codeshim._stream import OpenHandle
from codeshim._types import OpenFlags, StreamOption

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from codeshim._types import OpenContext, Reader, StrPath

log = logging.getLogger(__name__)

_TEXT_ONLY_KEYS = frozenset({"encoding", "errors", "newline"})


class InterceptorState(enum.Enum):
    ACTIVE = "active"
    BYPASSED = "bypassed"


class Interceptor:
    """Stream handler attaching registered transformers to code loads.

    Ordinary opens are proxied to the native primitives untouched. Opens
    flagged ``OpenFlags.OPEN_FOR_INCLUDE`` get every registered transformer
    attached to their read channel, in registration order.

    Used as a context manager, the interceptor is installed on entry and
    the protocol's shims are removed on exit::

        registry = TransformerRegistry([CallableTransformer("upper", str.upper)])
        with Interceptor(registry):
            runpy.run_path("entry.py")
    """

    def __init__(
        self,
        registry: TransformerRegistry | None = None,
        protocol: FileProtocol | None = None,
    ) -> None:
        self.registry = registry if registry is not None else TransformerRegistry()
        self.protocol = protocol if protocol is not None else FileProtocol()
        self._state = InterceptorState.BYPASSED

    def __repr__(self) -> str:
        return f"Interceptor(state={self._state.value}, transformers={self.registry.names()!r})"

    @property
    def state(self) -> InterceptorState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is InterceptorState.ACTIVE

    # ── Installation ──────────────────────────────────────────────────────

    def intercept(self) -> None:
        """Install this interceptor as the file protocol handler. Idempotent."""
        self.protocol.register(self)
        self._state = InterceptorState.ACTIVE

    def restore(self) -> None:
        """Reinstall the native handler. Idempotent."""
        self.protocol.restore()
        self._state = InterceptorState.BYPASSED

    def uninstall(self) -> None:
        """Restore the native handler and remove the protocol shims."""
        self.protocol.unregister()
        self._state = InterceptorState.BYPASSED
        log.debug("interceptor uninstalled")

    @contextmanager
    def bypassed(self) -> Iterator[None]:
        """Run a block with the native handler installed.

        The protocol lock is held for the whole block so other threads
        wait instead of dispatching through the native handler.
        """
        with self.protocol.lock:
            self.restore()
            try:
                yield
            finally:
                self.intercept()

    def __enter__(self) -> Interceptor:
        self.intercept()
        log.debug("interceptor installed with %s", self.registry.names())
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.uninstall()

    # ── Handler contract ──────────────────────────────────────────────────

    def open(
        self,
        path: StrPath,
        mode: str = "r",
        flags: OpenFlags = OpenFlags.NONE,
        context: OpenContext | None = None,
    ) -> OpenHandle:
        """Open ``path``, attaching the transformer chain to code loads.

        Code loads are always binary: ``"t"`` is dropped from ``mode``, ``"b"``
        is added when missing, and the text-only context keys (encoding,
        errors, newline) are not forwarded.

        Raises:
            ResourceNotFoundError: read mode and nothing exists at ``path``.
            OSError: the real open failed.
        """
        path = os.fsdecode(path)
        if mode.startswith("r") and not self.protocol.default.exists(path):
            raise ResourceNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)

        include = OpenFlags.OPEN_FOR_INCLUDE in flags
        if include:
            mode = _binary_mode(mode)
            if context:
                context = {k: v for k, v in context.items() if k not in _TEXT_ONLY_KEYS}

        with self.bypassed():
            raw = io.open(path, mode, **context) if context else io.open(path, mode)
            reader = None
            if include:
                try:
                    reader = self._attach_transformers(raw, path)
                except BaseException:
                    raw.close()
                    raise
        return OpenHandle(raw, path, mode, reader)

    def read(self, handle: OpenHandle, count: int) -> Any:
        """Read up to ``count`` units from ``handle``, through its chain if any."""
        return handle.read(count)

    def eof(self, handle: OpenHandle) -> bool:
        return handle.eof()

    def stat(self, handle: OpenHandle) -> os.stat_result:
        return os.fstat(handle.fileno())

    def url_stat(self, path: StrPath, quiet: bool = False) -> os.stat_result | None:
        """Stat ``path`` without opening it.

        With ``quiet`` set, a failing stat yields None instead of raising.
        """
        with self.bypassed():
            try:
                return os.stat(path)
            except OSError:
                if quiet:
                    return None
                raise

    def set_option(self, handle: OpenHandle, option: StreamOption, *args: Any) -> bool:
        """Configure ``handle``. Returns False for unsupported options.

        BLOCKING takes a truthy flag; READ_BUFFER and CHUNK_SIZE take the
        number of bytes a transformed handle pulls from disk per read.
        Local files have no read timeout and no separate write buffer.
        """
        match option:
            case StreamOption.BLOCKING:
                os.set_blocking(handle.fileno(), bool(args[0]))
                return True
            case StreamOption.READ_BUFFER | StreamOption.CHUNK_SIZE:
                return handle.set_chunk_size(int(args[0]))
            case _:
                return False

    # ── Private ───────────────────────────────────────────────────────────

    def _attach_transformers(self, raw: Reader, path: str) -> Reader | None:
        transformers = self.registry.all()
        if not transformers:
            return None
        reader = raw
        for transformer in transformers:
            reader = transformer.attach(reader)
        log.debug(
            "attached %s to %s", ", ".join(t.name for t in transformers), path
        )
        return reader


def _binary_mode(mode: str) -> str:
    mode = mode.replace("t", "")
    return mode if "b" in mode else mode + "b"
