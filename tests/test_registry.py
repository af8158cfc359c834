"""Tests for the transformer registry (codeshim._registry)."""

from codeshim import CallableTransformer, ReplaceTransformer, TransformerRegistry
from codeshim.testing import uppercase


class TestRegister:
    def test_register_and_enumerate(self) -> None:
        registry = TransformerRegistry()
        upper = uppercase()
        registry.register(upper)

        assert registry.all() == (upper,)
        assert "upper" in registry
        assert len(registry) == 1

    def test_registration_order(self) -> None:
        first = ReplaceTransformer("first", "a", "b")
        second = ReplaceTransformer("second", "b", "c")
        registry = TransformerRegistry().register(first).register(second)

        assert registry.names() == ["first", "second"]
        assert registry.all() == (first, second)

    def test_same_name_replaces(self) -> None:
        registry = TransformerRegistry()
        old = CallableTransformer("upper", str.upper)
        new = CallableTransformer("upper", str.lower)
        registry.register(old)
        registry.register(new)

        assert len(registry) == 1
        assert registry.get("upper") is new
        assert registry.all() == (new,)

    def test_replacement_keeps_position(self) -> None:
        registry = TransformerRegistry()
        registry.register(ReplaceTransformer("a", "1", "2"))
        registry.register(ReplaceTransformer("b", "2", "3"))
        registry.register(ReplaceTransformer("a", "x", "y"))

        assert registry.names() == ["a", "b"]

    def test_constructor_accepts_iterable(self) -> None:
        registry = TransformerRegistry([uppercase("one"), uppercase("two")])
        assert [t.name for t in registry] == ["one", "two"]


class TestLookup:
    def test_get_missing(self) -> None:
        assert TransformerRegistry().get("nope") is None

    def test_contains_non_string(self) -> None:
        assert 42 not in TransformerRegistry()

    def test_empty(self) -> None:
        registry = TransformerRegistry()
        assert registry.all() == ()
        assert registry.names() == []
        assert len(registry) == 0

    def test_all_is_a_snapshot(self) -> None:
        registry = TransformerRegistry([uppercase()])
        snapshot = registry.all()
        registry.register(uppercase("later"))
        assert len(snapshot) == 1
