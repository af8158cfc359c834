"""codeshim: rewrite source code as it is loaded, not on disk.

All public types are exported from this module for flat imports:

    from codeshim import Interceptor, TransformerRegistry, RegexTransformer
"""

__version__ = "0.1.0"

# Config types, see codeshim._config for details
from codeshim._config import (
    REGEX_TRANSFORMER,
    REPLACE_TRANSFORMER,
    ConfigParseError,
    InterceptConfig,
    InvalidConfigError,
    TransformerFactory,
    TypedConfig,
    UnknownTypeUrlError,
    build_registry,
    load_intercept_config,
    parse_intercept_config,
)
from codeshim._errors import CodeshimError, ResourceNotFoundError

# Import hook
from codeshim._importer import CodeLoadFinder, CodeLoadLoader

# Interceptor
from codeshim._interceptor import Interceptor, InterceptorState

# Protocol table
from codeshim._protocol import (
    FileProtocol,
    NativeHandler,
    ProtocolError,
    active_protocol,
)
from codeshim._registry import TransformerRegistry
from codeshim._stream import DEFAULT_CHUNK_SIZE, FilteredReader, OpenHandle

# Concrete transformers
from codeshim._transformers import (
    CallableTransformer,
    LineTransformer,
    RegexTransformer,
    ReplaceTransformer,
    SourceTransformer,
    StreamTransformer,
    TransformerError,
)

# Protocols and flags
from codeshim._types import (
    Filter,
    OpenContext,
    OpenFlags,
    Reader,
    StreamHandler,
    StreamOption,
    StrPath,
    Transformer,
)

__all__ = [
    # Protocols and flags
    "Filter",
    "OpenContext",
    "OpenFlags",
    "Reader",
    "StreamHandler",
    "StreamOption",
    "StrPath",
    "Transformer",
    # Errors
    "CodeshimError",
    "ResourceNotFoundError",
    "ProtocolError",
    "TransformerError",
    "ConfigParseError",
    "UnknownTypeUrlError",
    "InvalidConfigError",
    # Streams
    "DEFAULT_CHUNK_SIZE",
    "FilteredReader",
    "OpenHandle",
    # Transformers
    "StreamTransformer",
    "SourceTransformer",
    "LineTransformer",
    "CallableTransformer",
    "ReplaceTransformer",
    "RegexTransformer",
    # Registry
    "TransformerRegistry",
    # Protocol table
    "FileProtocol",
    "NativeHandler",
    "active_protocol",
    # Import hook
    "CodeLoadFinder",
    "CodeLoadLoader",
    # Interceptor
    "Interceptor",
    "InterceptorState",
    # Config
    "TypedConfig",
    "InterceptConfig",
    "TransformerFactory",
    "parse_intercept_config",
    "load_intercept_config",
    "build_registry",
    "REGEX_TRANSFORMER",
    "REPLACE_TRANSFORMER",
]
