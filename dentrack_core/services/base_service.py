# =============================================================================
# dentrack_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any, Awaitable, Callable
from dataclasses import dataclass

from dentrack_core.logging import get_logger, LogContext
from dentrack_core.errors import DentTrackError


@dataclass
class ServiceResult:
    """
    Standard result container for service operations.

    Remote calls hand back one of these instead of raising, so callers can
    tell a failed save from a successful one without try/except.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        """Create a successful result"""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Dict[str, Any] = None,
        data: Any = None,
    ) -> ServiceResult:
        """Create a failed result"""
        return cls(
            success=False,
            data=data,
            error=error,
            error_code=error_code,
            metadata=metadata,
        )

    @classmethod
    def from_exception(cls, e: Exception, data: Any = None) -> ServiceResult:
        """Create a failed result from an exception"""
        if isinstance(e, DentTrackError):
            return cls(
                success=False,
                data=data,
                error=e.message,
                error_code=e.code,
                metadata=e.details,
            )
        return cls(
            success=False,
            data=data,
            error=str(e),
            error_code="EXCEPTION",
        )


class BaseService(ABC):
    """
    Abstract base class for services.

    Provides common functionality:
    - Logging
    - Error handling
    - Result standardization

    Usage:
        class MyService(BaseService):
            async def do_something(self) -> ServiceResult:
                return await self.safe_execute_async("Doing something", coro_fn)
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        """
        Create a logging context for an operation.

        Usage:
            with self.log_operation("Fetching dentists"):
                ...
        """
        return LogContext(self.logger, operation)

    def classify_error(self, e: Exception) -> Optional[str]:
        """Hook for subclasses to map exceptions to an error code."""
        return None

    async def safe_execute_async(
        self,
        operation: str,
        func: Callable[..., Awaitable[Any]],
        *args,
        default: Any = None,
        **kwargs
    ) -> ServiceResult:
        """
        Await a coroutine function with error handling and logging.

        Args:
            operation: Description of the operation
            func: Coroutine function to await
            default: Value placed in ``data`` when the call fails
            *args, **kwargs: Arguments to pass to func

        Returns:
            ServiceResult with success/failure status; never raises for
            errors raised by ``func``
        """
        try:
            with self.log_operation(operation):
                result = await func(*args, **kwargs)
            return ServiceResult.ok(result)
        except DentTrackError as e:
            self.logger.warning(f"{operation} failed: {e}")
            return ServiceResult.from_exception(e, data=default)
        except Exception as e:
            code = self.classify_error(e) or "EXCEPTION"
            self.logger.warning(f"{operation} failed [{code}]: {e}")
            return ServiceResult.fail(str(e), error_code=code, data=default)
