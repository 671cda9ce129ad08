# =============================================================================
# oncogest_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass

from oncogest_core.logging import get_logger, LogContext
from oncogest_core.errors import handle_error, OncoGestError


@dataclass
class ServiceResult:
    """
    Standard result container for service operations.

    A failed result may still carry data (e.g. the last known collection
    when the remote store could not be reached).
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
        if isinstance(e, OncoGestError):
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
    Abstract base class for all services.

    Provides common functionality:
    - Logging
    - Error capture into ServiceResult

    Usage:
        class MyService(BaseService):
            def do_something(self) -> ServiceResult:
                return self.safe_execute("Doing something", self._work)
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        """
        Create a logging context for an operation.

        Usage:
            with self.log_operation("Loading snapshot"):
                store.get_snapshot(key)
        """
        return LogContext(self.logger, operation)

    def safe_execute(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        fallback_data: Any = None,
        **kwargs
    ) -> ServiceResult:
        """
        Execute a function with error handling and logging.

        Args:
            operation: Description of the operation
            func: Function to execute
            fallback_data: Data attached to a failed result
            *args, **kwargs: Arguments to pass to func

        Returns:
            ServiceResult with success/failure status
        """
        try:
            with self.log_operation(operation):
                result = func(*args, **kwargs)
            if isinstance(result, ServiceResult):
                return result
            return ServiceResult.ok(result)
        except OncoGestError as e:
            handle_error(e, show_user_message=False)
            return ServiceResult.from_exception(e, data=fallback_data)
        except Exception as e:
            self.logger.error(f"{operation} failed: {e}", exc_info=True)
            return ServiceResult.fail(str(e), error_code="EXCEPTION", data=fallback_data)
