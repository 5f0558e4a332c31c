"""Custom exception hierarchy for the network entity state manager.

Exception Hierarchy:
    NetStateError (base)
    ├── TransportUnavailableError - property sink/source not ready
    ├── ActivationRejectedError - stack refused a cellular activation
    ├── ThreadAffinityError - mutation attempted off the owning thread
    ├── ContinuationError - deferred continuation misused
    ├── EntityNotFoundError - lookup by path failed
    │   ├── NetworkNotFoundError
    │   └── DeviceNotFoundError
    └── ConfigurationError - configuration errors
        └── SnapshotLoadError - snapshot file could not be loaded

Parse problems are never exceptions: an unknown or malformed property is
reported as ``ParseResult.IGNORED``. Connection failures are data stored
on the network (``ConnectionErrorCode``), not raised.
"""

from typing import Any, Optional


class NetStateError(Exception):
    """Base exception for all network state errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error context.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details!r})"


class TransportUnavailableError(NetStateError):
    """Raised by a transport when it cannot accept requests.

    The library itself never lets this escape a mutating operation; it
    checks availability up front and turns the operation into a no-op.
    """

    def __init__(self, operation: str, path: Optional[str] = None) -> None:
        details = {"operation": operation}
        if path:
            details["path"] = path
        super().__init__("Network transport unavailable", details)
        self.operation = operation
        self.path = path


class ActivationRejectedError(NetStateError):
    """Raised by a transport when the stack refuses an activation request."""

    def __init__(self, service_path: str, reason: Optional[str] = None) -> None:
        details = {"service_path": service_path}
        if reason:
            details["reason"] = reason
        super().__init__("Cellular activation rejected", details)
        self.service_path = service_path
        self.reason = reason


class ThreadAffinityError(NetStateError):
    """Raised when entity state is mutated from a thread that does not own it."""

    def __init__(self, owner_thread: int, current_thread: int) -> None:
        super().__init__(
            "Network state accessed from non-owner thread",
            {"owner_thread": owner_thread, "current_thread": current_thread},
        )
        self.owner_thread = owner_thread
        self.current_thread = current_thread


class ContinuationError(NetStateError):
    """Raised when a single-fire continuation is invoked more than once."""

    def __init__(self, message: str, name: Optional[str] = None) -> None:
        super().__init__(message, {"continuation": name} if name else None)
        self.name = name


class EntityNotFoundError(NetStateError):
    """Raised when a required entity is not present in any registry."""

    entity_kind = "Entity"

    def __init__(self, path: str) -> None:
        super().__init__(f"{self.entity_kind} not found: {path}")
        self.path = path


class NetworkNotFoundError(EntityNotFoundError):
    """Raised when a network service path is unknown."""

    entity_kind = "Network"


class DeviceNotFoundError(EntityNotFoundError):
    """Raised when a device path is unknown."""

    entity_kind = "Device"


class ConfigurationError(NetStateError):
    """Raised for invalid configuration values or files."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        field: Optional[str] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class SnapshotLoadError(ConfigurationError):
    """Raised when a property snapshot file cannot be loaded."""

    def __init__(self, file_path: str, message: str) -> None:
        super().__init__(f"Failed to load '{file_path}': {message}")
        self.file_path = file_path
