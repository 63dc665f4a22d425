"""
Centralized exception hierarchy for domain-specific errors.

This module provides custom exception classes that represent specific
error conditions in the driving monitor, enabling consistent error handling
in the session layer and the live API.
"""


class SpeedWatchError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SpeedWatchError):
    """Exception raised when data validation fails."""


class ExternalServiceError(SpeedWatchError):
    """Exception raised when service calls fail."""


class PositionSourceError(SpeedWatchError):
    """Exception raised when no usable position source is available."""

    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"

    def __init__(
        self,
        message: str,
        reason: str = UNSUPPORTED,
        details: dict | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message, {"reason": reason, **(details or {})})


class TrackingStateError(SpeedWatchError):
    """Exception raised when an operation conflicts with the tracking state."""


class ResourceNotFoundError(SpeedWatchError):
    """Exception raised when a requested resource is not found."""


SpeedWatchException = SpeedWatchError
ValidationException = ValidationError
ExternalServiceException = ExternalServiceError
PositionSourceException = PositionSourceError
TrackingStateException = TrackingStateError
ResourceNotFoundException = ResourceNotFoundError
