"""Backend API exceptions for error handling."""
from __future__ import annotations
from typing import Optional


class BackendError(Exception):
    """Base exception for all backend operations."""
    pass


class BackendAPIError(BackendError):
    """Failed call to the integration backend.

    Attributes:
        status_code: HTTP status code (None when no response was received)
        message: Error message from response
        endpoint: API endpoint that failed
        details: Extra diagnostics returned by the backend
        kind: ErrorKind value of the normalized failure
    """

    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        endpoint: str = "",
        details: Optional[list[str]] = None,
        kind: Optional[str] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        self.details = list(details or [])
        self.kind = kind
        label = status_code if status_code is not None else kind or "error"
        super().__init__(f"[{label}] {endpoint}: {message}" if endpoint else f"[{label}] {message}")


class TenantNotFoundError(BackendAPIError):
    """Tenant lookup failed - id does not exist."""
    pass


class ThirdPartyApiNotFoundError(BackendAPIError):
    """Third-party API definition does not exist."""
    pass
