"""Tenant credential management against the backend v2 endpoints."""
from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, asdict
from typing import Any, Optional

from .client import BackendClient
from .exceptions import BackendAPIError, TenantNotFoundError
from .responses import ApiResponse, ErrorKind

logger = logging.getLogger(__name__)

TENANTS_PATH = "/api/v2/tenants"
CREDENTIALS_PATH = "/api/v2/tenants/credentials"
OAUTH_TEST_PATH = "/api/oauth/test"


def generate_tenant_id() -> str:
    return str(uuid.uuid4())


@dataclass
class TenantConfig:
    """Tenant record as returned by the backend (secret never included)."""
    id: str
    tenant_name: str = ""
    company_id: str = ""
    base_url: str = ""
    client_id: str = ""
    description: Optional[str] = None
    is_active: bool = True
    created_date: str = ""
    modified_date: Optional[str] = None
    token_endpoint: Optional[str] = None
    api_version: Optional[str] = None
    scope: Optional[str] = None

    @property
    def has_client_secret(self) -> bool:
        # The backend stores the secret with the client id; it never returns it.
        return bool(self.client_id)

    @classmethod
    def from_dict(cls, raw: dict) -> "TenantConfig":
        return cls(
            id=raw.get("id") or "",
            tenant_name=raw.get("tenantName") or "",
            company_id=raw.get("companyId") or "",
            base_url=raw.get("baseUrl") or "",
            client_id=raw.get("clientId") or "",
            description=raw.get("description"),
            is_active=bool(raw.get("isActive", True)),
            created_date=raw.get("createdDate") or "",
            modified_date=raw.get("modifiedDate"),
            token_endpoint=raw.get("tokenEndpoint"),
            api_version=raw.get("apiVersion"),
            scope=raw.get("scope"),
        )


@dataclass
class CreateTenantRequest:
    tenant_name: str
    company_id: str
    base_url: str
    client_id: str
    client_secret: str
    description: Optional[str] = None
    is_active: bool = True

    def to_dict(self) -> dict:
        payload = {
            "tenantName": self.tenant_name,
            "companyId": self.company_id,
            "baseUrl": self.base_url,
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "isActive": self.is_active,
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass
class UpdateTenantRequest:
    id: str
    tenant_name: str
    company_id: str
    base_url: str
    client_id: str
    client_secret: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @classmethod
    def from_tenant(cls, tenant: TenantConfig, **overrides) -> "UpdateTenantRequest":
        fields = dict(
            id=tenant.id,
            tenant_name=tenant.tenant_name,
            company_id=tenant.company_id,
            base_url=tenant.base_url,
            client_id=tenant.client_id,
            description=tenant.description,
            is_active=tenant.is_active,
        )
        fields.update(overrides)
        return cls(**fields)

    def to_dict(self) -> dict:
        payload = {
            "id": self.id,
            "tenantName": self.tenant_name,
            "companyId": self.company_id,
            "baseUrl": self.base_url,
            "clientId": self.client_id,
        }
        # Blank secret means "keep the stored one"
        if self.client_secret:
            payload["clientSecret"] = self.client_secret
        if self.description is not None:
            payload["description"] = self.description
        if self.is_active is not None:
            payload["isActive"] = self.is_active
        return payload


@dataclass
class OAuthTestRequest:
    base_url: str
    client_id: str
    client_secret: str
    company_id: str

    def to_dict(self) -> dict:
        return {
            "baseUrl": self.base_url,
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "companyId": self.company_id,
        }


class TenantService:
    """Tenant CRUD and credential checks.

    Usage:
        service = TenantService(BackendClient(base_url))
        result = service.list_tenants()
        if result.ok:
            for tenant in result.data: ...
    """

    def __init__(self, client: BackendClient):
        self.client = client

    def list_tenants(self) -> ApiResponse:
        """List tenants; data is a list of TenantConfig."""
        result = self.client.get(TENANTS_PATH)
        if not result.ok:
            return result
        if not isinstance(result.data, list):
            logger.error("Expected array of tenants but got %s", type(result.data).__name__)
            return ApiResponse.failure(
                "Invalid data format: expected array of tenants",
                ErrorKind.INVALID_PAYLOAD,
                status_code=result.status_code,
            )
        tenants = [TenantConfig.from_dict(raw) for raw in result.data if isinstance(raw, dict)]
        return ApiResponse.success(tenants, status_code=result.status_code)

    def get_tenant(self, tenant_id: str) -> ApiResponse:
        """Fetch one tenant; data is a TenantConfig."""
        result = self.client.get(TENANTS_PATH, params={"id": tenant_id})
        if result.ok and isinstance(result.data, dict):
            return ApiResponse.success(TenantConfig.from_dict(result.data), status_code=result.status_code)
        return result

    def require_tenant(self, tenant_id: str) -> TenantConfig:
        """Fetch one tenant or raise.

        Raises:
            TenantNotFoundError: Backend answered 404
            BackendAPIError: Any other failure
        """
        result = self.get_tenant(tenant_id)
        error_cls = TenantNotFoundError if result.status_code == 404 else BackendAPIError
        tenant = result.unwrap(endpoint=TENANTS_PATH, error_cls=error_cls)
        if not isinstance(tenant, TenantConfig):
            raise BackendAPIError(result.status_code, "Invalid tenant record", TENANTS_PATH)
        return tenant

    def create_tenant(self, request: CreateTenantRequest) -> ApiResponse:
        return self.client.post(TENANTS_PATH, json=request.to_dict())

    def update_tenant(self, tenant_id: str, request: UpdateTenantRequest) -> ApiResponse:
        return self.client.put(TENANTS_PATH, json=request.to_dict(), params={"id": tenant_id})

    def set_tenant_active(self, tenant: TenantConfig, active: bool) -> ApiResponse:
        """Re-submit a tenant record with a new active flag."""
        request = UpdateTenantRequest.from_tenant(tenant, is_active=active)
        return self.update_tenant(tenant.id, request)

    def delete_tenant(self, tenant_id: str) -> ApiResponse:
        return self.client.delete(TENANTS_PATH, params={"id": tenant_id})

    def get_tenant_credentials(self, tenant_id: str) -> ApiResponse:
        return self.client.get(CREDENTIALS_PATH, params={"id": tenant_id})

    def test_oauth_token(self, request: OAuthTestRequest) -> ApiResponse:
        return self.client.post(OAUTH_TEST_PATH, json=request.to_dict())


def tenant_to_view(tenant: TenantConfig, display_name: Optional[str] = None) -> dict[str, Any]:
    """Flatten a tenant for templates, preferring the locally stored display name."""
    view = asdict(tenant)
    view["has_client_secret"] = tenant.has_client_secret
    view["display_name"] = display_name or tenant.tenant_name or tenant.id
    return view
