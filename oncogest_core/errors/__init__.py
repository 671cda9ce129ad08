# =============================================================================
# oncogest_core/errors/__init__.py
# Centralized Error Handling for OncoGest
# =============================================================================

from .exceptions import (
    OncoGestError,
    RecordValidationError,
    BackingStoreError,
    SnapshotCorruptError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    error_boundary,
)

__all__ = [
    # Exceptions
    "OncoGestError",
    "RecordValidationError",
    "BackingStoreError",
    "SnapshotCorruptError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "error_boundary",
]
