"""Third-party API definition management."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from tenant_console.core.integrations import ThirdPartyApi

from .client import BackendClient
from .exceptions import BackendAPIError, ThirdPartyApiNotFoundError
from .responses import ApiResponse, ErrorKind

logger = logging.getLogger(__name__)

THIRD_PARTY_PATH = "/api/thirdpartyapis"
ENHANCED_CONFIG_PATH = "/api/configurations/enhanced"
CONNECTION_TEST_PATH = "/api/testParBrinkConnection/enhanced"
DEFAULT_TENANT_ID = "default-tenant"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ThirdPartyApiService:
    """CRUD and connection tests for third-party API definitions."""

    def __init__(self, client: BackendClient, tenant_id: str = DEFAULT_TENANT_ID):
        self.client = client
        self.tenant_id = tenant_id

    def _creation_payload(self, api: ThirdPartyApi) -> dict:
        payload = api.to_dict()
        for key in ("id", "createdAt", "updatedAt"):
            payload.pop(key, None)
        payload["tenantId"] = self.tenant_id
        payload.setdefault("isActive", True)
        return payload

    def list_apis(self) -> ApiResponse:
        """List definitions; data is a list of ThirdPartyApi."""
        result = self.client.get(THIRD_PARTY_PATH)
        if not result.ok:
            return result
        if not isinstance(result.data, list):
            return ApiResponse.failure(
                "Invalid data format: expected array of APIs",
                ErrorKind.INVALID_PAYLOAD,
                status_code=result.status_code,
            )
        apis = []
        for raw in result.data:
            try:
                apis.append(ThirdPartyApi.from_dict(raw))
            except (TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed third-party API record %r: %s", raw, exc)
        return ApiResponse.success(apis, status_code=result.status_code)

    def get_api(self, api_id: str) -> ApiResponse:
        result = self.client.get(f"{THIRD_PARTY_PATH}/{api_id}")
        if result.ok and isinstance(result.data, dict):
            try:
                return ApiResponse.success(ThirdPartyApi.from_dict(result.data), status_code=result.status_code)
            except ValueError as exc:
                return ApiResponse.failure(str(exc), ErrorKind.INVALID_PAYLOAD, status_code=result.status_code)
        return result

    def require_api(self, api_id: str) -> ThirdPartyApi:
        """Fetch one definition or raise ThirdPartyApiNotFoundError / BackendAPIError."""
        result = self.get_api(api_id)
        error_cls = ThirdPartyApiNotFoundError if result.status_code == 404 else BackendAPIError
        api = result.unwrap(endpoint=f"{THIRD_PARTY_PATH}/{api_id}", error_cls=error_cls)
        if not isinstance(api, ThirdPartyApi):
            raise BackendAPIError(result.status_code, "Invalid third-party API record", THIRD_PARTY_PATH)
        return api

    def create_api(self, api: ThirdPartyApi) -> ApiResponse:
        logger.info("Creating third-party API %s (%s)", api.name, api.auth_type.value)
        return self.client.post(THIRD_PARTY_PATH, json=self._creation_payload(api))

    def create_api_enhanced(self, api: ThirdPartyApi) -> ApiResponse:
        logger.info("Creating enhanced third-party API %s", api.name)
        return self.client.post(ENHANCED_CONFIG_PATH, json=self._creation_payload(api))

    def update_api(self, api_id: str, fields: dict[str, Any]) -> ApiResponse:
        payload = dict(fields)
        payload["updatedAt"] = _timestamp()
        return self.client.put(f"{THIRD_PARTY_PATH}/{api_id}", json=payload)

    def delete_api(self, api_id: str) -> ApiResponse:
        return self.client.delete(f"{THIRD_PARTY_PATH}/{api_id}")

    def test_connection(self, api: ThirdPartyApi, extra: Optional[dict] = None) -> ApiResponse:
        payload = api.to_dict()
        if extra:
            payload.update(extra)
        return self.client.post(CONNECTION_TEST_PATH, json=payload)
