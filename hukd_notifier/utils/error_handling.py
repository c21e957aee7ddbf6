"""
Error handling utilities for the HotUKDeals notifier.

Per-channel processing must never abort a run, so failures are recorded
here and then either suppressed (with a fallback value) or re-raised,
depending on how the call site is decorated.
"""

import asyncio
import functools
import random
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .logging import get_logger


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    FEED = "feed"
    STORE = "store"
    CONFIGURATION = "configuration"
    MESSAGE_DELIVERY = "message_delivery"
    DATA_VALIDATION = "data_validation"
    SYSTEM = "system"


@dataclass
class ErrorInfo:
    """Information about an error occurrence."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    traceback: str
    context: Dict[str, Any]


class ErrorTracker:
    """
    Tracks errors and provides statistics for monitoring.
    """

    def __init__(self, max_errors: int = 1000):
        """
        Initialize error tracker.

        Args:
            max_errors: Maximum number of errors to keep in memory
        """
        self.max_errors = max_errors
        self.errors: List[ErrorInfo] = []
        self.error_counts: Dict[str, int] = {}
        self.component_errors: Dict[str, List[ErrorInfo]] = {}
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """
        Record an error occurrence.

        Args:
            component: Component where error occurred
            category: Error category
            severity: Error severity
            message: Error message
            exception: Exception object if available
            context: Additional context information

        Returns:
            ErrorInfo object
        """
        error_info = ErrorInfo(
            timestamp=datetime.now(),
            component=component,
            category=category,
            severity=severity,
            message=message,
            exception_type=type(exception).__name__ if exception else "Unknown",
            traceback=traceback.format_exc() if exception else "",
            context=context or {},
        )

        self.errors.append(error_info)
        if len(self.errors) > self.max_errors:
            self.errors.pop(0)

        error_key = f"{component}.{category.value}.{severity.value}"
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        component_errors = self.component_errors.setdefault(component, [])
        component_errors.append(error_info)
        if len(component_errors) > 100:
            component_errors.pop(0)

        self.logger.error(
            f"Error recorded: {message}",
            extra={
                "component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "context": context,
            },
            exc_info=exception is not None,
        )

        return error_info

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        last_hour = datetime.now() - timedelta(hours=1)

        return {
            "total_errors": len(self.errors),
            "errors_last_hour": len([e for e in self.errors if e.timestamp >= last_hour]),
            "error_counts": self.error_counts.copy(),
            "component_error_counts": {
                component: len(errors)
                for component, errors in self.component_errors.items()
            },
            "category_breakdown": {
                category.value: len([e for e in self.errors if e.category == category])
                for category in ErrorCategory
            },
        }

    def get_component_errors(self, component: str, limit: int = 10) -> List[ErrorInfo]:
        """Get recent errors for a specific component."""
        return self.component_errors.get(component, [])[-limit:]


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_backoff: bool = True,
        jitter: bool = True,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_backoff = exponential_backoff
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based failed attempt."""
        delay = self.base_delay
        if self.exponential_backoff:
            delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay


_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """Get global error tracker instance."""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker()
    return _error_tracker


def with_error_handling(
    component: str,
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    retry_config: Optional[RetryConfig] = None,
    fallback_value: Any = None,
    suppress_exceptions: bool = False,
):
    """
    Decorator for comprehensive error handling.

    Args:
        component: Component name
        category: Error category
        severity: Error severity
        retry_config: Retry configuration (async functions only)
        fallback_value: Value to return on failure
        suppress_exceptions: Whether to suppress exceptions
    """

    def decorator(func: Callable) -> Callable:
        func_name = getattr(func, "__name__", type(func).__name__)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            error_tracker = get_error_tracker()
            logger = get_logger(component)
            attempts = retry_config.max_attempts if retry_config else 1

            for attempt in range(attempts):
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(f"{func_name} succeeded on attempt {attempt + 1}")
                    return result

                except asyncio.CancelledError:
                    raise

                except Exception as e:
                    error_tracker.record_error(
                        component=component,
                        category=category,
                        severity=severity,
                        message=f"Error in {func_name}: {str(e)}",
                        exception=e,
                        context={
                            "function": func_name,
                            "attempt": attempt + 1,
                            "max_attempts": attempts,
                        },
                    )

                    if attempt == attempts - 1:
                        if suppress_exceptions:
                            logger.warning(
                                f"Suppressing exception in {func_name}: {str(e)}"
                            )
                            return fallback_value
                        raise

                    delay = retry_config.delay_for(attempt)
                    logger.info(
                        f"Retrying {func_name} in {delay:.2f} seconds "
                        f"(attempt {attempt + 1}/{attempts})"
                    )
                    await asyncio.sleep(delay)

            return fallback_value

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            error_tracker = get_error_tracker()
            logger = get_logger(component)

            try:
                return func(*args, **kwargs)
            except Exception as e:
                error_tracker.record_error(
                    component=component,
                    category=category,
                    severity=severity,
                    message=f"Error in {func_name}: {str(e)}",
                    exception=e,
                    context={"function": func_name},
                )

                if suppress_exceptions:
                    logger.warning(f"Suppressing exception in {func_name}: {str(e)}")
                    return fallback_value
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
