"""Low-level HTTP client for the integration backend.

Handles URL building, request serialization, and response normalization.
"""
from __future__ import annotations
import json as jsonlib
import logging
import time
from typing import Any, Dict, Optional

import requests

from .responses import ApiResponse, network_failure, normalize_response

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15
BODY_METHODS = {"POST", "PUT", "PATCH"}


class BackendClient:
    """HTTP client for the tenant/integration backend.

    Features:
    - Explicit base URL (no ambient configuration at call time)
    - JSON bodies only for POST/PUT/PATCH, so plain GETs skip CORS preflight
    - Never raises on transport or payload errors: every call yields ApiResponse

    Usage:
        client = BackendClient("http://localhost:7074")
        result = client.get("/api/v2/tenants")
        if result.ok:
            tenants = result.data
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize backend client.

        Args:
            base_url: Backend base URL (e.g. http://localhost:7074)
            timeout: Per-request timeout in seconds
            default_headers: Headers sent with every request
        """
        if not base_url:
            raise ValueError("Backend base URL is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers = dict(default_headers or {})

    @classmethod
    def from_config(cls, cfg) -> "BackendClient":
        return cls(cfg.backend_api_base_url, timeout=cfg.backend_request_timeout)

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """Execute a request and normalize the outcome.

        Args:
            method: HTTP method
            path: API endpoint path (e.g. "/api/v2/tenants")
            json: JSON-serializable body (POST/PUT/PATCH only)
            params: Query parameters

        Returns:
            ApiResponse (NetworkError when no response was received)
        """
        method = method.upper()
        url = self.url_for(path)
        headers = dict(self.default_headers)
        data = None
        if method in BODY_METHODS:
            headers["Content-Type"] = "application/json"
            if json is not None:
                data = jsonlib.dumps(json)

        start = time.time()
        try:
            resp = requests.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Backend request failed: %s %s: %s", method, url, exc)
            return network_failure(exc)

        elapsed = time.time() - start
        logger.debug("%s %s -> %s (%.2fs)", method, url, resp.status_code, elapsed)
        result = normalize_response(resp.status_code, resp.text, method)
        if not result.ok:
            logger.warning("Backend call %s %s failed: %s", method, path, result.error)
        return result

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.request("POST", path, json=json, params=params)

    def put(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.request("PUT", path, json=json, params=params)

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.request("DELETE", path, params=params)
