"""Integration backend client library.

Architecture:
- client.py: HTTP client with response normalization
- responses.py: ApiResponse contract and normalize_response()
- tenants.py: Tenant credential CRUD and OAuth token test
- third_party.py: Third-party API definitions
- operations.py: PAR Brink and UKG Ready queries
- exceptions.py: Typed exceptions for callers that prefer raising

Usage:
    from tenant_console.core.backend import BackendClient, TenantService

    client = BackendClient("http://localhost:7074")
    result = TenantService(client).list_tenants()
    if not result.ok:
        print(result.error)
"""
from .client import BackendClient, REQUEST_TIMEOUT
from .exceptions import (
    BackendError,
    BackendAPIError,
    TenantNotFoundError,
    ThirdPartyApiNotFoundError,
)
from .responses import (
    ApiResponse,
    ErrorKind,
    normalize_response,
    network_failure,
)
from .tenants import (
    TenantService,
    TenantConfig,
    CreateTenantRequest,
    UpdateTenantRequest,
    OAuthTestRequest,
    generate_tenant_id,
    tenant_to_view,
)
from .third_party import ThirdPartyApiService
from .operations import ParBrinkService, UkgReadyService

__all__ = [
    # Client
    "BackendClient",
    "REQUEST_TIMEOUT",

    # Exceptions
    "BackendError",
    "BackendAPIError",
    "TenantNotFoundError",
    "ThirdPartyApiNotFoundError",

    # Responses
    "ApiResponse",
    "ErrorKind",
    "normalize_response",
    "network_failure",

    # Services
    "TenantService",
    "ThirdPartyApiService",
    "ParBrinkService",
    "UkgReadyService",

    # Tenant models
    "TenantConfig",
    "CreateTenantRequest",
    "UpdateTenantRequest",
    "OAuthTestRequest",
    "generate_tenant_id",
    "tenant_to_view",
]
