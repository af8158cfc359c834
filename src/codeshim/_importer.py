"""Import hook that turns module imports into code-load accesses.

The interpreter's own source loader reads files through ``_io`` directly,
so it never reaches the patched primitives. CodeLoadFinder swaps in a
loader that reads source through ``io.open_code``, the interpreter's
"open for execution" entry point, which the file protocol routes to the
installed handler with ``OpenFlags.OPEN_FOR_INCLUDE``.

Bytecode caches are bypassed in both directions: cached bytecode would
skip the transformers, and transformed bytecode must not be persisted.
"""

from __future__ import annotations

import io
import logging
import os
from importlib.abc import MetaPathFinder
from importlib.machinery import SOURCE_SUFFIXES, PathFinder, SourceFileLoader
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from importlib.machinery import ModuleSpec
    from types import CodeType, ModuleType

    from codeshim._types import StrPath

log = logging.getLogger(__name__)


class CodeLoadLoader(SourceFileLoader):
    """Source loader reading module source via ``io.open_code``."""

    def get_data(self, path: str) -> bytes:
        if path.endswith(tuple(SOURCE_SUFFIXES)):
            with io.open_code(path) as file:
                return file.read()
        return super().get_data(path)

    def get_code(self, fullname: str) -> CodeType:
        path = self.get_filename(fullname)
        return self.source_to_code(self.get_data(path), path)


class CodeLoadFinder(MetaPathFinder):
    """Claim plain source modules for CodeLoadLoader.

    With ``roots`` set, only modules whose file lives under one of the
    roots are claimed; everything else falls through to the next finder.
    """

    def __init__(self, roots: Iterable[StrPath] | None = None) -> None:
        self.roots: tuple[str, ...] = tuple(
            os.path.realpath(os.fsdecode(r)) for r in roots or ()
        )

    def __repr__(self) -> str:
        return f"CodeLoadFinder(roots={self.roots!r})"

    def find_spec(
        self,
        fullname: str,
        path: Sequence[str] | None = None,
        target: ModuleType | None = None,
    ) -> ModuleSpec | None:
        spec = PathFinder.find_spec(fullname, path, target)
        if spec is None or type(spec.loader) is not SourceFileLoader:
            return None
        if spec.origin is None or not self._claims(spec.origin):
            return None
        log.debug("routing import of %s through open_code", fullname)
        spec.loader = CodeLoadLoader(fullname, spec.origin)
        return spec

    def _claims(self, origin: str) -> bool:
        if not self.roots:
            return True
        real = os.path.realpath(origin)
        return any(
            real == root or real.startswith(root + os.sep) for root in self.roots
        )
