"""Test utilities for codeshim.

Convenience transformers for tests and examples. They are deliberately
trivial: real transformers encode a rewrite rule for a specific purpose.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from codeshim._transformers import CallableTransformer

if TYPE_CHECKING:
    from codeshim._config import TransformerFactory

UPPERCASE_TRANSFORMER = "codeshim.test.v1.UpperCase"


def uppercase(name: str = "upper") -> CallableTransformer:
    """Transformer that uppercases every alphabetic character.

    >>> import io
    >>> from codeshim.testing import uppercase
    >>> uppercase().attach(io.BytesIO(b"hello world")).read()
    b'HELLO WORLD'
    """
    return CallableTransformer(name, str.upper)


def register(factories: dict[str, TransformerFactory]) -> dict[str, TransformerFactory]:
    """Register the test-domain uppercase transformer factory.

    Type URL: codeshim.test.v1.UpperCase
    Config field: { "name": "transformer_name" } (defaults to "upper")
    """
    factories[UPPERCASE_TRANSFORMER] = _uppercase_factory
    return factories


def _uppercase_factory(config: dict[str, Any]) -> CallableTransformer:
    name = config.get("name", "upper")
    if not isinstance(name, str):
        msg = "UpperCase requires 'name' to be a string"
        raise ValueError(msg)
    return uppercase(name)
