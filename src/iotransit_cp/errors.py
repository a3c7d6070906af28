"""
IoTransit error types — construction errors are raised, everything else is
emitted as an event value.
"""

from typing import Any, Optional


class IoTransitError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConstructionError(IoTransitError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("construction_error", message, details)


class ConnectionFailure(IoTransitError):
    """Opening the control plane connection failed."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("connection_failed", message, details)


class ConnectionError(IoTransitError):
    """Transport error on an established connection."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("connection_error", message, details)


class SendError(IoTransitError):
    def __init__(self, message: str = "control plane not connected"):
        super().__init__("send_error", message)
