"""
Custom exceptions for the dashboard gate.

All exceptions inherit from DashboardGateError so callers can catch every
gate-related failure with a single except clause. None of them are raised
on the request path: access decisions are expressed as HTTP responses,
not exceptions.
"""

from typing import Optional, Any, Dict


class DashboardGateError(Exception):
    """
    Base exception class for all dashboard gate errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information about the error
        original_error: The original exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        error_str = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            error_str += f" (Context: {context_str})"
        if self.original_error:
            error_str += f" (Caused by: {self.original_error})"
        return error_str


class ConfigurationError(DashboardGateError):
    """
    Raised when the configuration cannot be loaded or is invalid.

    Example:
        ```python
        try:
            config = load_config()
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid configuration",
                context={"errors": e.error_count()},
                original_error=e,
            )
        ```
    """
    pass


class NotificationError(DashboardGateError):
    """
    Raised when the daily password could not be delivered to the webhook.

    This exception is raised when:
    - The webhook is unreachable
    - The request times out
    - The webhook answers with a non-success status

    It never leaves the notifier: ``PasswordNotifier.fire`` logs and
    swallows it so a missed delivery cannot take the process down.
    """
    pass


class SchedulerError(DashboardGateError):
    """Raised when the daily scheduler is misused (e.g. started twice)."""
    pass
