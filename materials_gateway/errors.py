"""Custom exceptions for materials gateway operations.

Every failure surfaced to a caller is one of these. The HTTP layer turns them
into ``{"error": message}`` with ``status_code`` as the response status.
"""

from __future__ import annotations

GATEWAY_FAILURE_STATUS = 502


class MaterialsAPIError(Exception):
    """Base exception for gateway errors."""

    status_code: int = GATEWAY_FAILURE_STATUS

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        source: str | None = None,
    ) -> None:
        """Initialize error with message, status and optional source.

        Args:
            message: Error description
            status_code: HTTP status to report (class default if omitted)
            source: Upstream endpoint or component that failed
        """
        if status_code is not None:
            self.status_code = status_code
        self.source = source
        super().__init__(message)


class ConfigurationError(MaterialsAPIError):
    """Raised when the upstream credential is not configured."""

    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        msg = message or (
            "MP_API_KEY not configured; cannot reach the Materials Project API."
        )
        super().__init__(msg, source="settings")


class UpstreamError(MaterialsAPIError):
    """Raised when the upstream service answers with a non-success status."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        source: str | None = None,
    ) -> None:
        """Initialize upstream error.

        Args:
            status_code: Status returned by the upstream service
            message: Upstream body text (verbatim)
            source: Endpoint that failed
        """
        msg = message or "Materials Project API request failed."
        super().__init__(msg, status_code=status_code, source=source)


class DecodeError(UpstreamError):
    """Raised when an upstream body cannot be decoded."""

    def __init__(
        self,
        source: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.original_error = original_error
        msg = "Malformed response from Materials Project API"
        if source:
            msg += f" ({source})"
        super().__init__(GATEWAY_FAILURE_STATUS, msg, source=source)


class TransportError(MaterialsAPIError):
    """Raised on network failures reaching the upstream service."""

    def __init__(
        self,
        source: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize transport error.

        Args:
            source: Endpoint being requested
            original_error: Underlying exception
        """
        self.original_error = original_error
        msg = "Network error connecting to Materials Project API"
        if source:
            msg += f" ({source})"
        if original_error:
            msg += f": {original_error}"
        super().__init__(msg, status_code=GATEWAY_FAILURE_STATUS, source=source)


class ClientInputError(MaterialsAPIError):
    """Raised when a request is structurally unusable."""

    status_code = 400

    def __init__(self, field: str, message: str | None = None) -> None:
        """Initialize client input error.

        Args:
            field: Request field that is invalid
            message: Details
        """
        self.field = field
        msg = message or f"Invalid request field: {field}"
        super().__init__(msg, source="request")
