# =============================================================================
# dentrack_core/errors/__init__.py
# Centralized Error Handling for DentTrack
# =============================================================================

from .exceptions import (
    DentTrackError,
    DataValidationError,
    CacheCorruptionError,
    CacheWriteError,
    RemoteStoreError,
    SignInError,
    ConfigurationError,
    UnsyncedDataOverwrittenError,
)

from .handlers import (
    handle_error,
    safe_execute,
    ErrorContext,
    error_boundary,
)

__all__ = [
    # Exceptions
    "DentTrackError",
    "DataValidationError",
    "CacheCorruptionError",
    "CacheWriteError",
    "RemoteStoreError",
    "SignInError",
    "ConfigurationError",
    "UnsyncedDataOverwrittenError",
    # Handlers
    "handle_error",
    "safe_execute",
    "ErrorContext",
    "error_boundary",
]
