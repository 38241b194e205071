"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tenant_console.core.business_date import DEFAULT_TIMEZONE, InvalidTimezone, load_timezone

SECRETS_DIR = Path("/run/secrets")
DEFAULT_BACKEND_URL = "http://localhost:7074"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str
    secret_key_fallbacks: list[str] = field(default_factory=list)
    session_cookie_secure: bool = True
    session_dir: str = ""
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"

    # Integration backend
    backend_api_base_url: str = DEFAULT_BACKEND_URL
    backend_request_timeout: float = 15.0
    default_timezone: str = DEFAULT_TIMEZONE

    # OIDC
    oidc_issuer: str = ""
    oidc_client_id: str = "tenant-console"
    oidc_client_secret: str = ""
    oidc_redirect_uri: str = ""
    post_logout_redirect_uri: str = ""
    oidc_scope: str = "openid profile email"

    # Access (empty = any signed-in user)
    console_allowed_roles: list[str] = field(default_factory=list)

    # Tenant defaults
    tenant_names_file: str = "instance/tenant_names.json"
    default_company_id: str = "33631552"
    default_tenant_base_url: str = "https://secure2.saashr.com"
    third_party_tenant_id: str = "default-tenant"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _parse_list(raw: str) -> list[str]:
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw:
        return 15.0
    try:
        timeout = float(raw)
    except ValueError:
        raise RuntimeError(f"BACKEND_REQUEST_TIMEOUT must be a number, got {raw!r}") from None
    if timeout <= 0:
        raise RuntimeError("BACKEND_REQUEST_TIMEOUT must be positive")
    return timeout


def load_settings() -> AppConfig:
    """Load application settings from /run/secrets and the environment."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if demo_mode:
            secret_key = secrets.token_urlsafe(48)
            print("[demo-mode] Generated temporary FLASK_SECRET_KEY")
        else:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")

    secret_key_fallbacks = [
        key.strip()
        for key in os.environ.get("FLASK_SECRET_KEY_FALLBACKS", "").split(",")
        if key.strip()
    ]

    session_secure_str = os.environ.get("FLASK_SESSION_COOKIE_SECURE", "true")
    session_cookie_secure = session_secure_str.lower() == "true"
    session_dir = os.environ.get("SESSION_FILE_DIR", "")

    # Trusted proxies
    trusted_proxy_ips = os.environ.get("TRUSTED_PROXY_IPS")
    if not trusted_proxy_ips:
        is_testing = os.environ.get("PYTEST_CURRENT_TEST") is not None
        if demo_mode or is_testing:
            trusted_proxy_ips = "127.0.0.1/32,::1/128"
            if demo_mode:
                print("[demo-mode] Defaulted TRUSTED_PROXY_IPS to localhost ranges")
        else:
            raise RuntimeError("TRUSTED_PROXY_IPS is required when DEMO_MODE is false.")

    # Integration backend
    backend_api_base_url = os.environ.get("BACKEND_API_BASE_URL", DEFAULT_BACKEND_URL).rstrip("/")
    backend_request_timeout = _parse_timeout(os.environ.get("BACKEND_REQUEST_TIMEOUT"))

    default_timezone = os.environ.get("DEFAULT_TIMEZONE", DEFAULT_TIMEZONE).strip()
    try:
        load_timezone(default_timezone)
    except InvalidTimezone as exc:
        raise RuntimeError(f"DEFAULT_TIMEZONE is invalid: {exc}") from exc

    # OIDC
    oidc_issuer = _get_or_generate(
        "OIDC_ISSUER",
        demo_default="https://login.microsoftonline.com/common/v2.0",
        demo_mode=demo_mode,
    ).rstrip("/")
    oidc_client_id = _get_or_generate("OIDC_CLIENT_ID", demo_default="tenant-console", demo_mode=demo_mode)
    oidc_client_secret = _load_secret_from_file("oidc_client_secret", "OIDC_CLIENT_SECRET") or ""
    oidc_redirect_uri = _get_or_generate(
        "OIDC_REDIRECT_URI",
        demo_default="http://localhost:5000/callback",
        demo_mode=demo_mode,
    )
    post_logout_redirect_uri = _get_or_generate(
        "POST_LOGOUT_REDIRECT_URI",
        demo_default="http://localhost:5000/",
        demo_mode=demo_mode,
    )
    oidc_scope = os.environ.get("OIDC_SCOPE", "openid profile email")

    console_allowed_roles = _parse_list(os.environ.get("CONSOLE_ALLOWED_ROLES", ""))

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; backend={backend_api_base_url}; timezone={default_timezone}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        secret_key_fallbacks=secret_key_fallbacks,
        session_cookie_secure=session_cookie_secure,
        session_dir=session_dir,
        trusted_proxy_ips=trusted_proxy_ips,
        backend_api_base_url=backend_api_base_url,
        backend_request_timeout=backend_request_timeout,
        default_timezone=default_timezone,
        oidc_issuer=oidc_issuer,
        oidc_client_id=oidc_client_id,
        oidc_client_secret=oidc_client_secret,
        oidc_redirect_uri=oidc_redirect_uri,
        post_logout_redirect_uri=post_logout_redirect_uri,
        oidc_scope=oidc_scope,
        console_allowed_roles=console_allowed_roles,
        tenant_names_file=os.environ.get("TENANT_NAMES_FILE", "instance/tenant_names.json"),
        default_company_id=os.environ.get("DEFAULT_COMPANY_ID", "33631552"),
        default_tenant_base_url=os.environ.get("DEFAULT_TENANT_BASE_URL", "https://secure2.saashr.com").rstrip("/"),
        third_party_tenant_id=os.environ.get("THIRD_PARTY_TENANT_ID", "default-tenant"),
    )
