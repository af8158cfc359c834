"""Transformer registry: name -> transformer, in registration order.

The registry is an explicitly constructed object owned by an Interceptor,
so independent interceptors never share transformers.

Example::

    registry = TransformerRegistry()
    registry.register(CallableTransformer("upper", str.upper))
    registry.register(RegexTransformer("freeze", r"time\\.time\\(\\)", "0.0"))
    [t.name for t in registry.all()]  # ["upper", "freeze"]
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from codeshim._types import Transformer

log = logging.getLogger(__name__)


class TransformerRegistry:
    """Insertion-ordered mapping of transformer name to transformer.

    Registering under an existing name replaces the earlier transformer and
    keeps its position, so every name is applied exactly once per load.
    """

    def __init__(self, transformers: Iterable[Transformer] = ()) -> None:
        self._transformers: dict[str, Transformer] = {}
        for transformer in transformers:
            self.register(transformer)

    def register(self, transformer: Transformer) -> TransformerRegistry:
        """Insert ``transformer`` under its name, replacing any previous entry."""
        name = transformer.name
        if name in self._transformers:
            log.debug("replacing transformer %r", name)
        else:
            log.debug("registering transformer %r", name)
        self._transformers[name] = transformer
        return self

    def all(self) -> tuple[Transformer, ...]:
        """Return the registered transformers in registration order."""
        return tuple(self._transformers.values())

    def get(self, name: str) -> Transformer | None:
        return self._transformers.get(name)

    def names(self) -> list[str]:
        """Return the registered names in registration order."""
        return list(self._transformers)

    def __len__(self) -> int:
        return len(self._transformers)

    def __contains__(self, name: object) -> bool:
        return name in self._transformers

    def __iter__(self) -> Iterator[Transformer]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"TransformerRegistry({self.names()!r})"
