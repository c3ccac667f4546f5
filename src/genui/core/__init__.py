"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .errors import (
    GenUIError,
    ValidationError,
    ClassificationFailure,
    GenerationTimeout,
    GenerationServiceFailure,
    InvalidGeneratedDocument,
    PatchApplicationFailure,
    UnknownComponentKind,
    UnresolvedBinding,
    error_code,
)
from .validate import (
    GenerationRequest,
    PriorMessage,
    ValidationResult,
    validate_tree_limits,
)
from .logging_config import configure_logging, get_logger, LogContext
from .stream import batch_fragments, chunk_text
from .json import (
    extract_json,
    safe_json_dumps,
    JSONParseError,
    validate_json_size,
    validate_json_depth,
)
from .hash import Algorithm, hash_string, hash_bytes, fingerprint
from .cache import LRUCache, Stats


def create_container(settings: Settings | None = None):
    """Create dependency injection container (lazy import to avoid circular deps)."""
    from .container import create_container as _create_container

    return _create_container(settings)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "GenUIError",
    "ValidationError",
    "ClassificationFailure",
    "GenerationTimeout",
    "GenerationServiceFailure",
    "InvalidGeneratedDocument",
    "PatchApplicationFailure",
    "UnknownComponentKind",
    "UnresolvedBinding",
    "error_code",
    # Validation
    "GenerationRequest",
    "PriorMessage",
    "ValidationResult",
    "validate_tree_limits",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # Streaming
    "batch_fragments",
    "chunk_text",
    # JSON
    "extract_json",
    "safe_json_dumps",
    "JSONParseError",
    "validate_json_size",
    "validate_json_depth",
    # DI
    "create_container",
    # Hashing
    "Algorithm",
    "hash_string",
    "hash_bytes",
    "fingerprint",
    # Caching
    "LRUCache",
    "Stats",
]
