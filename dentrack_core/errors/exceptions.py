# =============================================================================
# dentrack_core/errors/exceptions.py
# Custom Exception Hierarchy for DentTrack
# =============================================================================

from typing import Optional, Dict, Any


class DentTrackError(Exception):
    """
    Base exception for all DentTrack errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "DATA_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DT_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# DATA LAYER EXCEPTIONS
# =============================================================================

class DataValidationError(DentTrackError):
    """Raised when a treatment or dentist payload fails validation"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value

        super().__init__(
            message=message,
            code="DATA_001",
            details=details,
            **kwargs,
        )


class CacheCorruptionError(DentTrackError):
    """Raised when a local cache entry cannot be decoded"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="CACHE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# REMOTE STORE EXCEPTIONS
# =============================================================================

class RemoteStoreError(DentTrackError):
    """Raised (and usually captured into a ServiceResult) when Supabase fails"""

    NETWORK = "REMOTE_NETWORK"
    AUTH = "REMOTE_AUTH"
    GENERIC = "REMOTE_ERROR"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        code: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            code=code or self.GENERIC,
            details=details,
            **kwargs,
        )


# =============================================================================
# AUTHENTICATION EXCEPTIONS
# =============================================================================

class SignInError(DentTrackError):
    """Raised when sign-in fails, is cancelled, or times out"""

    def __init__(
        self,
        message: str,
        reason: str = "failed",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["reason"] = reason

        super().__init__(
            message=message,
            code="AUTH_001",
            details=details,
            **kwargs,
        )
        self.reason = reason


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(DentTrackError):
    """Raised when configuration is invalid"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )


# =============================================================================
# SYNC EXCEPTIONS
# =============================================================================

class CacheWriteError(DentTrackError):
    """Raised when the local cache cannot be written"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="CACHE_002",
            details=details,
            **kwargs,
        )


class UnsyncedDataOverwrittenError(DentTrackError):
    """Reported when reconciliation replaces local edits that never reached the account"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="SYNC_001", **kwargs)
