"""
Custom exceptions for the hardware coordination service.

Health checks and change planning never raise across their public
boundary; these exceptions cover storage, settings and bridge failures.
"""

from typing import Any, Optional


class HardwareError(Exception):
    """Base exception for all hardware coordination errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            code: Optional error code for programmatic handling.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for command responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Device Errors
# =============================================================================


class DeviceError(HardwareError):
    """Base exception for device-related errors."""

    def __init__(
        self,
        message: str,
        device_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.device_id = device_id
        if device_id:
            self.details["device_id"] = device_id


class DeviceNotFoundError(DeviceError):
    """Device is not present in the registry."""

    pass


# =============================================================================
# Settings Errors
# =============================================================================


class SettingsError(HardwareError):
    """Base exception for configuration errors."""

    pass


class InvalidSettingsError(SettingsError):
    """A settings update contains invalid values."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field_name = field_name
        if field_name:
            self.details["field"] = field_name


# =============================================================================
# Bridge Errors
# =============================================================================


class PrintBridgeError(HardwareError):
    """The print bridge rejected or failed a command."""

    pass


# =============================================================================
# Repository Errors
# =============================================================================


class RepositoryError(HardwareError):
    """Base exception for repository errors."""

    pass


class RedisConnectionError(RepositoryError):
    """Error connecting to Redis."""

    pass
