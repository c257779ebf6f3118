"""
Error taxonomy for the Discover pipeline.

Soft failures (``RateLimitExceeded``) are absorbed by the service layer and
never reach the user as errors. Everything else propagates to the HTTP
boundary, where ``api/routes/cafes.py`` maps it to a status code.
"""
from typing import Any, Dict, Optional


class DiscoverError(Exception):
    """
    Base exception for all Discover errors.

    Attributes:
        message: Human-readable error message (server-side; may be detailed)
        code: Stable error code for API responses
        details: Additional context for logs
    """

    default_code = "DISCOVER_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class RateLimitExceeded(DiscoverError):
    """The outbound Places budget for the current window is spent."""

    default_code = "DISCOVER_RATE_LIMITED"


class OutOfServiceArea(DiscoverError):
    """Provider results resolved to no allowed country."""

    default_code = "DISCOVER_OUT_OF_AREA"


class ProviderError(DiscoverError):
    """Upstream Places failure: transport, HTTP status, REQUEST_DENIED or a malformed payload."""

    default_code = "DISCOVER_PROVIDER"

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, details={"status": status, "body": body})
        self.status = status
        self.body = body


class PersistenceVerificationFailed(DiscoverError):
    """Candidates were written but nothing can be read back."""

    default_code = "DISCOVER_PERSISTENCE"


class ConfigurationError(DiscoverError):
    """Missing location input or missing provider credentials."""

    default_code = "DISCOVER_CONFIG"

    def __init__(self, message: str, service_unavailable: bool = False, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.service_unavailable = service_unavailable
