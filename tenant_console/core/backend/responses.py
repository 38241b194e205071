"""Normalized response contract for backend calls.

The backend does not wrap every response the same way: some endpoints nest
the payload under ``data``, some return it bare, and failures may or may not
carry ``error``/``details``. Every call site receives an ApiResponse instead
and branches on ``ok``.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type

from .exceptions import BackendAPIError

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON response from server"
NETWORK_ERROR_MESSAGE = "Network error"


class ErrorKind(str, Enum):
    INVALID_PAYLOAD = "InvalidPayload"
    NETWORK_ERROR = "NetworkError"
    HTTP_ERROR = "HttpError"


@dataclass(frozen=True)
class ApiResponse:
    """Tagged result of a backend call: either data or an error, never both."""

    ok: bool
    data: Any = None
    error: Optional[str] = None
    details: Optional[list[str]] = None
    kind: Optional[ErrorKind] = None
    status_code: Optional[int] = None

    def __post_init__(self):
        if self.ok:
            if self.error is not None or self.details is not None or self.kind is not None:
                raise ValueError("Successful ApiResponse cannot carry error fields")
        else:
            if not isinstance(self.error, str) or not self.error:
                raise ValueError("Failed ApiResponse requires an error message")
            if self.data is not None:
                raise ValueError("Failed ApiResponse cannot carry data")

    @classmethod
    def success(cls, data: Any, status_code: Optional[int] = None) -> "ApiResponse":
        return cls(ok=True, data=data, status_code=status_code)

    @classmethod
    def failure(
        cls,
        error: str,
        kind: ErrorKind,
        details: Optional[list[str]] = None,
        status_code: Optional[int] = None,
    ) -> "ApiResponse":
        return cls(ok=False, error=error, details=details, kind=kind, status_code=status_code)

    @property
    def error_status(self) -> int:
        """HTTP status for relaying a failure: the backend's error status, else 502."""
        if self.status_code and self.status_code >= 400:
            return self.status_code
        return 502

    def to_dict(self) -> dict:
        """Wire shape used by the console's JSON endpoints."""
        if self.ok:
            return {"success": True, "data": self.data}
        payload = {"success": False, "error": self.error, "kind": self.kind.value if self.kind else None}
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def unwrap(self, endpoint: str = "", error_cls: Type[BackendAPIError] = BackendAPIError) -> Any:
        """Return data, or raise error_cls for a failed response."""
        if self.ok:
            return self.data
        raise error_cls(
            self.status_code,
            self.error,
            endpoint,
            details=self.details,
            kind=self.kind.value if self.kind else None,
        )


def _coerce_details(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [item if isinstance(item, str) else json.dumps(item) for item in value]
    if isinstance(value, str):
        return [value]
    return [json.dumps(value)]


def _error_message(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        value = payload.get("error")
        if isinstance(value, dict):
            value = value.get("message")
        if isinstance(value, str) and value:
            return value
        if value:
            return str(value)
    return f"HTTP {status_code}"


def normalize_response(status_code: int, body: Optional[str], method: str = "GET") -> ApiResponse:
    """Convert a completed HTTP response into an ApiResponse.

    Args:
        status_code: HTTP status code
        body: Raw response text (may be empty)
        method: HTTP method used, for diagnostics only

    Returns:
        Success with the payload's ``data`` (or the whole payload), or a
        failure tagged InvalidPayload / HttpError.
    """
    text = body or ""
    if text:
        try:
            payload = json.loads(text)
        except ValueError:
            logger.warning("Failed to parse JSON response (%s %s): %.200s", method, status_code, text)
            return ApiResponse.failure(
                INVALID_JSON_MESSAGE,
                ErrorKind.INVALID_PAYLOAD,
                details=[text],
                status_code=status_code,
            )
    else:
        payload = {}

    if not 200 <= status_code <= 299:
        details = payload.get("details") if isinstance(payload, dict) else None
        return ApiResponse.failure(
            _error_message(payload, status_code),
            ErrorKind.HTTP_ERROR,
            details=_coerce_details(details),
            status_code=status_code,
        )

    if isinstance(payload, dict) and "data" in payload:
        return ApiResponse.success(payload["data"], status_code=status_code)
    return ApiResponse.success(payload, status_code=status_code)


def network_failure(exc: BaseException) -> ApiResponse:
    """Failure for a request that never produced a response."""
    message = str(exc).strip() or NETWORK_ERROR_MESSAGE
    return ApiResponse.failure(message, ErrorKind.NETWORK_ERROR)
