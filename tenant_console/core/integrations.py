"""Typed third-party API definitions.

Auth configuration is a closed set of variants keyed by auth type. Each
variant only accepts its own fields, so a misspelled key is rejected at
parse time instead of being stored and silently ignored.
"""
from __future__ import annotations
import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class AuthType(str, Enum):
    NONE = "none"
    API_KEY = "apikey"
    BEARER = "bearer"
    BASIC = "basic"
    OAUTH2 = "oauth2"
    CUSTOM = "custom"


AUTH_TYPE_LABELS = {
    AuthType.NONE: "No Auth",
    AuthType.API_KEY: "API Key",
    AuthType.BEARER: "Bearer Token",
    AuthType.BASIC: "Basic Auth",
    AuthType.OAUTH2: "OAuth 2.0",
    AuthType.CUSTOM: "Custom",
}

GRANT_TYPES = {"client_credentials", "authorization_code", "password"}
HTTP_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH"}


@dataclass(frozen=True)
class NoAuth:
    auth_type = AuthType.NONE


@dataclass(frozen=True)
class ApiKeyAuth:
    header: str
    value: str
    auth_type = AuthType.API_KEY


@dataclass(frozen=True)
class BearerAuth:
    token: str
    auth_type = AuthType.BEARER


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str
    auth_type = AuthType.BASIC


@dataclass(frozen=True)
class OAuth2Auth:
    client_id: str
    client_secret: str
    token_url: str
    grant_type: str = "client_credentials"
    scope: Optional[str] = None
    auth_type = AuthType.OAUTH2


@dataclass(frozen=True)
class CustomAuth:
    headers: tuple[tuple[str, str], ...] = ()
    auth_type = AuthType.CUSTOM

    def header_map(self) -> dict[str, str]:
        return dict(self.headers)


AuthConfig = Union[NoAuth, ApiKeyAuth, BearerAuth, BasicAuth, OAuth2Auth, CustomAuth]


def coerce_auth_type(value: Union[str, AuthType]) -> AuthType:
    try:
        return AuthType(str(value.value if isinstance(value, AuthType) else value).strip().lower())
    except ValueError:
        raise ValueError(f"Unsupported auth type: {value!r}") from None


def auth_type_label(auth_type: Union[str, AuthType]) -> str:
    try:
        return AUTH_TYPE_LABELS[coerce_auth_type(auth_type)]
    except ValueError:
        return str(auth_type)


def _check_keys(auth_type: AuthType, raw: dict, allowed: set[str]) -> None:
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ValueError(f"Unknown {auth_type.value} auth field(s): {', '.join(unknown)}")


def _required(raw: dict, key: str, label: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} is required")
    return value.strip()


def _header_pairs(value: Any) -> tuple[tuple[str, str], ...]:
    if value in (None, ""):
        return ()
    if not isinstance(value, dict):
        raise ValueError("Custom headers must be a mapping of header name to value")
    pairs = []
    for name, header_value in value.items():
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Custom header names must be non-empty strings")
        pairs.append((name.strip(), str(header_value)))
    return tuple(pairs)


def parse_auth_config(auth_type: Union[str, AuthType], raw: Optional[dict] = None) -> AuthConfig:
    """Build the auth variant for auth_type from a backend/form mapping.

    Keys use the backend's camelCase names (apiKeyHeader, bearerToken,
    oauth2Config, customHeaders, ...). Empty values are dropped first so
    that forms posting every field still parse.

    Raises:
        ValueError: Unknown auth type, unknown key, or missing required field
    """
    kind = coerce_auth_type(auth_type)
    raw = {key: value for key, value in (raw or {}).items() if value not in (None, "", {})}

    if kind is AuthType.NONE:
        _check_keys(kind, raw, set())
        return NoAuth()

    if kind is AuthType.API_KEY:
        _check_keys(kind, raw, {"apiKeyHeader", "apiKeyValue"})
        return ApiKeyAuth(
            header=_required(raw, "apiKeyHeader", "API key header name"),
            value=_required(raw, "apiKeyValue", "API key value"),
        )

    if kind is AuthType.BEARER:
        _check_keys(kind, raw, {"bearerToken"})
        return BearerAuth(token=_required(raw, "bearerToken", "Bearer token"))

    if kind is AuthType.BASIC:
        _check_keys(kind, raw, {"username", "password"})
        return BasicAuth(
            username=_required(raw, "username", "Username"),
            password=_required(raw, "password", "Password"),
        )

    if kind is AuthType.OAUTH2:
        _check_keys(kind, raw, {"oauth2Config"})
        oauth = raw.get("oauth2Config")
        if not isinstance(oauth, dict):
            raise ValueError("OAuth 2.0 configuration is required")
        _check_keys(kind, oauth, {"clientId", "clientSecret", "tokenUrl", "scope", "grantType"})
        grant_type = (oauth.get("grantType") or "client_credentials").strip()
        if grant_type not in GRANT_TYPES:
            raise ValueError(f"Unsupported OAuth 2.0 grant type: {grant_type}")
        return OAuth2Auth(
            client_id=_required(oauth, "clientId", "OAuth client id"),
            client_secret=_required(oauth, "clientSecret", "OAuth client secret"),
            token_url=_required(oauth, "tokenUrl", "OAuth token URL"),
            grant_type=grant_type,
            scope=(oauth.get("scope") or None),
        )

    _check_keys(kind, raw, {"customHeaders"})
    return CustomAuth(headers=_header_pairs(raw.get("customHeaders")))


@dataclass(frozen=True)
class ParBrinkLocation:
    id: str
    name: str
    location_id: str
    token: str
    is_active: bool = True

    @classmethod
    def from_dict(cls, raw: dict) -> "ParBrinkLocation":
        if not isinstance(raw, dict):
            raise ValueError("PAR Brink locations must be objects")
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            location_id=str(raw.get("locationId") or ""),
            token=str(raw.get("token") or ""),
            is_active=bool(raw.get("isActive", True)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "locationId": self.location_id,
            "token": self.token,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class ParBrinkCredentials:
    """PAR Brink access token and per-location tokens.

    These ride inside authConfig next to whichever auth variant the record
    uses, so they are split off before the variant is parsed.
    """
    access_token: Optional[str] = None
    locations: tuple[ParBrinkLocation, ...] = ()

    @classmethod
    def pop_from(cls, auth_config: dict) -> Optional["ParBrinkCredentials"]:
        """Remove the PAR Brink keys from auth_config and return them, or None."""
        access_token = auth_config.pop("accessToken", None)
        locations = auth_config.pop("locations", None)
        if access_token in (None, "") and not locations:
            return None
        if access_token is not None and not isinstance(access_token, str):
            raise ValueError("PAR Brink access token must be a string")
        if locations is not None and not isinstance(locations, list):
            raise ValueError("PAR Brink locations must be a list")
        return cls(
            access_token=access_token or None,
            locations=tuple(ParBrinkLocation.from_dict(item) for item in locations or []),
        )

    @property
    def active_locations(self) -> list[ParBrinkLocation]:
        return [location for location in self.locations if location.is_active]

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {}
        if self.access_token:
            payload["accessToken"] = self.access_token
        if self.locations:
            payload["locations"] = [location.to_dict() for location in self.locations]
        return payload


def auth_config_to_dict(cfg: AuthConfig, par_brink: Optional[ParBrinkCredentials] = None) -> dict:
    """Serialize an auth variant, plus any PAR Brink credentials, to the backend's authConfig shape."""
    payload = _variant_to_dict(cfg)
    if par_brink is not None:
        payload.update(par_brink.to_dict())
    return payload


def _variant_to_dict(cfg: AuthConfig) -> dict:
    if isinstance(cfg, ApiKeyAuth):
        return {"apiKeyHeader": cfg.header, "apiKeyValue": cfg.value}
    if isinstance(cfg, BearerAuth):
        return {"bearerToken": cfg.token}
    if isinstance(cfg, BasicAuth):
        return {"username": cfg.username, "password": cfg.password}
    if isinstance(cfg, OAuth2Auth):
        oauth = {
            "clientId": cfg.client_id,
            "clientSecret": cfg.client_secret,
            "tokenUrl": cfg.token_url,
            "grantType": cfg.grant_type,
        }
        if cfg.scope:
            oauth["scope"] = cfg.scope
        return {"oauth2Config": oauth}
    if isinstance(cfg, CustomAuth):
        return {"customHeaders": cfg.header_map()}
    return {}


def build_auth_headers(cfg: AuthConfig) -> dict[str, str]:
    """Headers a connection test sends for the given auth config."""
    if isinstance(cfg, ApiKeyAuth):
        return {cfg.header: cfg.value}
    if isinstance(cfg, BearerAuth):
        return {"Authorization": f"Bearer {cfg.token}"}
    if isinstance(cfg, BasicAuth):
        encoded = base64.b64encode(f"{cfg.username}:{cfg.password}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}
    if isinstance(cfg, CustomAuth):
        return cfg.header_map()
    # OAuth2 needs a token exchange first; the backend performs it.
    return {}


@dataclass(frozen=True)
class RateLimits:
    requests_per_second: Optional[int] = None
    requests_per_minute: Optional[int] = None
    requests_per_hour: Optional[int] = None
    requests_per_day: Optional[int] = None

    _KEYS = (
        ("requests_per_second", "requestsPerSecond"),
        ("requests_per_minute", "requestsPerMinute"),
        ("requests_per_hour", "requestsPerHour"),
        ("requests_per_day", "requestsPerDay"),
    )

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> Optional["RateLimits"]:
        if not raw:
            return None
        values = {}
        for attr, key in cls._KEYS:
            value = raw.get(key)
            if value in (None, ""):
                continue
            number = int(value)
            if number < 0:
                raise ValueError(f"{key} must not be negative")
            values[attr] = number
        return cls(**values) if values else None

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in self._KEYS if getattr(self, attr) is not None}


@dataclass(frozen=True)
class EndpointDefinition:
    id: str
    name: str
    path: str
    method: str = "GET"
    description: Optional[str] = None
    headers: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        if self.method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")

    @classmethod
    def from_dict(cls, raw: dict) -> "EndpointDefinition":
        return cls(
            id=raw.get("id") or "",
            name=raw.get("name") or "",
            path=raw.get("path") or "",
            method=(raw.get("method") or "GET").upper(),
            description=raw.get("description"),
            headers=_header_pairs(raw.get("headers")),
        )

    def to_dict(self) -> dict:
        payload = {"id": self.id, "name": self.name, "path": self.path, "method": self.method}
        if self.description:
            payload["description"] = self.description
        if self.headers:
            payload["headers"] = dict(self.headers)
        return payload


@dataclass
class ThirdPartyApi:
    """External API the platform can call on behalf of a tenant."""
    name: str
    base_url: str
    category: str = ""
    auth: AuthConfig = field(default_factory=NoAuth)
    id: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    endpoints: list[EndpointDefinition] = field(default_factory=list)
    rate_limits: Optional[RateLimits] = None
    par_brink: Optional[ParBrinkCredentials] = None
    health_check_endpoint: Optional[str] = None
    is_active: bool = True
    last_tested_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def auth_type(self) -> AuthType:
        return self.auth.auth_type

    @property
    def auth_label(self) -> str:
        return AUTH_TYPE_LABELS[self.auth_type]

    @property
    def health_check_url(self) -> str:
        if self.health_check_endpoint:
            return f"{self.base_url.rstrip('/')}{self.health_check_endpoint}"
        return self.base_url

    @classmethod
    def from_dict(cls, raw: dict) -> "ThirdPartyApi":
        auth_config = dict(raw.get("authConfig") or {})
        par_brink = ParBrinkCredentials.pop_from(auth_config)
        return cls(
            id=raw.get("id"),
            name=raw.get("name") or "",
            description=raw.get("description"),
            category=raw.get("category") or "",
            base_url=raw.get("baseUrl") or "",
            version=raw.get("version"),
            auth=parse_auth_config(raw.get("authType") or "none", auth_config),
            par_brink=par_brink,
            endpoints=[EndpointDefinition.from_dict(item) for item in raw.get("endpoints") or []],
            rate_limits=RateLimits.from_dict(raw.get("rateLimits")),
            health_check_endpoint=raw.get("healthCheckEndpoint") or None,
            is_active=bool(raw.get("isActive", True)),
            last_tested_at=raw.get("lastTestedAt"),
            created_at=raw.get("createdAt"),
            updated_at=raw.get("updatedAt"),
        )

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "name": self.name,
            "category": self.category,
            "baseUrl": self.base_url,
            "authType": self.auth_type.value,
            "authConfig": auth_config_to_dict(self.auth, self.par_brink),
            "endpoints": [endpoint.to_dict() for endpoint in self.endpoints],
            "isActive": self.is_active,
        }
        optional = {
            "id": self.id,
            "description": self.description,
            "version": self.version,
            "rateLimits": self.rate_limits.to_dict() if self.rate_limits else None,
            "healthCheckEndpoint": self.health_check_endpoint,
            "lastTestedAt": self.last_tested_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload
