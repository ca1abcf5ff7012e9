"""Custom exceptions for zapit.

Every error the service can surface derives from :class:`ZapitException`,
which carries the HTTP status the transport layer should answer with and
renders the ``{"error": "<message>"}`` envelope returned to clients.
"""

from typing import Optional, Dict, Any


class ZapitException(Exception):
    """Base exception for all zapit errors.

    - error_code: machine-readable identifier (logged, not returned)
    - message: human-readable description, returned in the envelope
    - details: optional additional context for logs
    """

    error_code: str = "ZAPIT_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Return the client-facing error envelope."""
        return {"error": self.message}


# ============ Client Errors (4xx) ============


class MalformedURLError(ZapitException):
    """Input could not be normalized into a well-formed URL."""

    error_code = "MALFORMED_URL"
    status_code = 400

    def __init__(self, raw: str, reason: str):
        super().__init__(f"malformed URL {raw!r}: {reason}", details={"raw": raw, "reason": reason})
        self.raw = raw
        self.reason = reason


# ============ Server Errors (5xx) ============


class StorageUnavailableError(ZapitException):
    """The verdict store could not be reached or rejected an operation."""

    error_code = "STORAGE_UNAVAILABLE"
    status_code = 500

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"storage unavailable during {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason


class SerializationError(ZapitException):
    """A verdict could not be encoded or decoded."""

    error_code = "SERIALIZATION_ERROR"
    status_code = 500


class ConfigurationError(ZapitException):
    """Configuration issue."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, message: str):
        super().__init__(f"Configuration error for {setting}: {message}", details={"setting": setting})
        self.setting = setting


class LifecycleError(ZapitException):
    """Lifecycle operation attempted from the wrong state."""

    error_code = "LIFECYCLE_ERROR"


# ============ Utility Functions ============


def error_response(exception: ZapitException) -> tuple:
    """Create a Flask JSON response pair from an exception.

    Returns:
        Tuple of (response_dict, status_code) ready for jsonify
    """
    return exception.to_dict(), exception.status_code


def make_error_response(message: str) -> Dict[str, Any]:
    """Create the error envelope without an exception instance."""
    return {"error": message}
