"""Config types and loading for interceptor setup.

The same shape loads from JSON or YAML:

    import_roots: [src]
    transformers:
      - type_url: codeshim.v1.RegexTransformer
        config: {name: freeze-time, pattern: 'time\\.time\\(\\)', replacement: '0.0'}

Config-driven construction path:
  dict → parse_intercept_config() → InterceptConfig → build_registry() → TransformerRegistry
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeAlias

import yaml

from codeshim._errors import CodeshimError
from codeshim._registry import TransformerRegistry
from codeshim._transformers import RegexTransformer, ReplaceTransformer

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from codeshim._types import StrPath, Transformer

REGEX_TRANSFORMER = "codeshim.v1.RegexTransformer"
REPLACE_TRANSFORMER = "codeshim.v1.ReplaceTransformer"

TransformerFactory: TypeAlias = "Callable[[dict[str, Any]], Transformer]"

# ═══════════════════════════════════════════════════════════════════════════════
# Error types
# ═══════════════════════════════════════════════════════════════════════════════


class ConfigParseError(CodeshimError):
    """Error parsing a config dict into config types."""


class UnknownTypeUrlError(CodeshimError):
    """A transformer type_url has no factory."""

    def __init__(self, type_url: str, available: list[str]) -> None:
        self.type_url = type_url
        self.available = sorted(available)
        registered = ", ".join(self.available) or "none"
        super().__init__(
            f"unknown transformer type_url: {type_url!r} (registered: {registered})"
        )


class InvalidConfigError(CodeshimError):
    """A transformer config payload was rejected by its factory."""

    def __init__(self, type_url: str, source: str) -> None:
        self.type_url = type_url
        self.source = source
        super().__init__(f"invalid config for {type_url}: {source}")


# ═══════════════════════════════════════════════════════════════════════════════
# Config types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class TypedConfig:
    """Reference to a transformer factory with its configuration."""

    type_url: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class InterceptConfig:
    """Everything the composition root needs to start interception.

    ``import_roots`` limits which imported modules are treated as code
    loads; empty means every plain source module.
    """

    transformers: tuple[TypedConfig, ...] = ()
    import_roots: tuple[str, ...] = ()
    import_hook: bool = True


# ═══════════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════════


def parse_intercept_config(data: Mapping[str, Any]) -> InterceptConfig:
    """Parse a dict into an InterceptConfig.

    Raises:
        ConfigParseError: If the dict is malformed.
    """
    if not isinstance(data, dict):
        msg = f"expected dict, got {type(data).__name__}"
        raise ConfigParseError(msg)

    unknown = set(data) - {"transformers", "import_roots", "import_hook"}
    if unknown:
        msg = f"unknown config fields: {sorted(unknown)}"
        raise ConfigParseError(msg)

    raw_transformers = data.get("transformers", [])
    if not isinstance(raw_transformers, list):
        msg = f"'transformers' must be a list, got {type(raw_transformers).__name__}"
        raise ConfigParseError(msg)

    raw_roots = data.get("import_roots", [])
    if not isinstance(raw_roots, list) or not all(isinstance(r, str) for r in raw_roots):
        msg = "'import_roots' must be a list of strings"
        raise ConfigParseError(msg)

    import_hook = data.get("import_hook", True)
    if not isinstance(import_hook, bool):
        msg = f"'import_hook' must be a bool, got {type(import_hook).__name__}"
        raise ConfigParseError(msg)

    return InterceptConfig(
        transformers=tuple(_parse_typed_config(t) for t in raw_transformers),
        import_roots=tuple(raw_roots),
        import_hook=import_hook,
    )


def load_intercept_config(path: StrPath) -> InterceptConfig:
    """Read a YAML (or JSON) config file.

    Relative ``import_roots`` are resolved against the file's directory.
    An empty file is an empty config.

    Raises:
        ConfigParseError: If the file is not valid YAML or is malformed.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"invalid YAML: {e}"
            raise ConfigParseError(msg) from e
    if data is None:
        data = {}
    config = parse_intercept_config(data)
    base = path.parent
    roots = tuple(str(base / root) for root in config.import_roots)
    return InterceptConfig(
        transformers=config.transformers,
        import_roots=roots,
        import_hook=config.import_hook,
    )


def _parse_typed_config(data: Any) -> TypedConfig:
    if not isinstance(data, dict):
        msg = f"transformer entry must be a dict, got {type(data).__name__}"
        raise ConfigParseError(msg)

    if "type_url" not in data:
        msg = "transformer entry missing required field 'type_url'"
        raise ConfigParseError(msg)

    type_url = data["type_url"]
    if not isinstance(type_url, str):
        msg = f"type_url must be a string, got {type(type_url).__name__}"
        raise ConfigParseError(msg)

    config = data.get("config", {})
    if not isinstance(config, dict):
        msg = f"config must be a dict, got {type(config).__name__}"
        raise ConfigParseError(msg)

    return TypedConfig(type_url=type_url, config=config)


# ═══════════════════════════════════════════════════════════════════════════════
# Registry construction
# ═══════════════════════════════════════════════════════════════════════════════


def build_registry(
    config: InterceptConfig,
    factories: Mapping[str, TransformerFactory] | None = None,
) -> TransformerRegistry:
    """Construct every configured transformer and register it in order.

    ``factories`` extends (and may override) the built-in type URLs.

    Raises:
        UnknownTypeUrlError: a type_url has no factory
        InvalidConfigError: a factory rejected its config
    """
    table: dict[str, TransformerFactory] = {
        REGEX_TRANSFORMER: _regex_factory,
        REPLACE_TRANSFORMER: _replace_factory,
    }
    if factories:
        table.update(factories)

    registry = TransformerRegistry()
    for entry in config.transformers:
        factory = table.get(entry.type_url)
        if factory is None:
            raise UnknownTypeUrlError(entry.type_url, list(table))
        try:
            transformer = factory(entry.config)
        except Exception as e:
            raise InvalidConfigError(entry.type_url, str(e)) from e
        registry.register(transformer)
    return registry


def _require_str(config: dict[str, Any], key: str, default: str | None = None) -> str:
    value = config.get(key, default)
    if not isinstance(value, str):
        msg = f"field {key!r} must be a string"
        raise ValueError(msg)
    return value


def _regex_factory(config: dict[str, Any]) -> RegexTransformer:
    return RegexTransformer(
        name=_require_str(config, "name"),
        pattern=_require_str(config, "pattern"),
        replacement=_require_str(config, "replacement", ""),
    )


def _replace_factory(config: dict[str, Any]) -> ReplaceTransformer:
    count = config.get("count", -1)
    if not isinstance(count, int) or isinstance(count, bool):
        msg = "field 'count' must be an integer"
        raise ValueError(msg)
    return ReplaceTransformer(
        name=_require_str(config, "name"),
        old=_require_str(config, "old"),
        new=_require_str(config, "new"),
        count=count,
    )
