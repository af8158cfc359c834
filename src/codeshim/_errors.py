"""Exception hierarchy shared across codeshim modules."""

from __future__ import annotations


class CodeshimError(Exception):
    """Base class for codeshim errors."""


class ResourceNotFoundError(CodeshimError, FileNotFoundError):
    """A read-mode open named a path with nothing behind it.

    Raised before any real I/O is attempted. Subclasses FileNotFoundError
    so callers of the patched ``open()`` see the usual exception.
    """
