"""Pytest shared fixtures for the tenant console."""
import json
import os
import pathlib
import sys
import time
from datetime import datetime, timezone
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")

import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from authlib.jose import JsonWebKey, jwt as authlib_jwt

from tenant_console.config.settings import AppConfig
from tenant_console.core import rbac
from tenant_console.core.business_date import BusinessDateResolver
from tenant_console.flask_app import create_app

ISSUER = "https://login.example.test/tenant-id/v2.0"
JWKS_URI = f"{ISSUER}/discovery/keys"
TOKEN_ENDPOINT = f"{ISSUER}/oauth2/token"
BACKEND_URL = "http://backend.test"

# 2024-03-01 02:30 in America/Denver (MST, UTC-7): business date 2024-02-29
FIXED_NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

PROVIDER_METADATA = {
    "issuer": ISSUER,
    "authorization_endpoint": f"{ISSUER}/oauth2/authorize",
    "token_endpoint": TOKEN_ENDPOINT,
    "userinfo_endpoint": f"{ISSUER}/userinfo",
    "jwks_uri": JWKS_URI,
    "end_session_endpoint": f"{ISSUER}/oauth2/logout",
}


def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=False,
        secret_key="test-secret",
        secret_key_fallbacks=[],
        session_cookie_secure=False,
        trusted_proxy_ips="127.0.0.1/32",
        backend_api_base_url=BACKEND_URL,
        backend_request_timeout=5.0,
        default_timezone="America/Denver",
        oidc_issuer=ISSUER,
        oidc_client_id="tenant-console",
        oidc_client_secret="client-secret",
        oidc_redirect_uri="https://console.test/callback",
        post_logout_redirect_uri="https://console.test/",
        console_allowed_roles=[],
    )
    base.update(overrides)
    return AppConfig(**base)


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    def __init__(self, payload=None, status_code: int = 200, text: Optional[str] = None):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else ("" if payload is None else json.dumps(payload))

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


class FakeBackend:
    """Stands in for requests.request; routes are keyed by (METHOD, path)."""

    def __init__(self, base_url: str = BACKEND_URL):
        self.base_url = base_url
        self.routes = {}
        self.calls = []

    def add(self, method: str, path: str, payload=None, status: int = 200, text: Optional[str] = None, exc=None):
        self.routes[(method.upper(), path)] = (payload, status, text, exc)
        return self

    def __call__(self, method, url, params=None, data=None, headers=None, timeout=None, **kwargs):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.calls.append({
            "method": method,
            "path": path,
            "params": params,
            "data": data,
            "headers": headers or {},
            "timeout": timeout,
        })
        key = (method.upper(), path)
        if key not in self.routes:
            raise RuntimeError(f"Unexpected backend call in test: {method} {url}")
        payload, status, text, exc = self.routes[key]
        if exc is not None:
            raise exc
        return StubResponse(payload, status, text)

    @property
    def last_call(self) -> dict:
        return self.calls[-1]

    def last_json(self):
        return json.loads(self.last_call["data"])


@pytest.fixture(autouse=True)
def backend(monkeypatch):
    """Fake backend behind requests.request; also blocks stray GET/POST calls."""
    fake = FakeBackend()
    monkeypatch.setattr(requests, "request", fake)

    def _stub_get(url, *args, **kwargs):
        if url == JWKS_URI:
            return StubResponse({"keys": []})
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    def _stub_post(url, *args, **kwargs):
        if url == TOKEN_ENDPOINT:
            return StubResponse({"access_token": "refreshed-token", "expires_in": 300})
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    monkeypatch.setattr(requests, "get", _stub_get)
    monkeypatch.setattr(requests, "post", _stub_post)
    return fake


@pytest.fixture(autouse=True)
def _reset_jwks_cache():
    rbac.reset_jwks_cache()
    yield
    rbac.reset_jwks_cache()


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app(tmp_path, monkeypatch):
    cfg = make_config(
        tenant_names_file=str(tmp_path / "tenant_names.json"),
        session_dir=str(tmp_path / "sessions"),
    )
    flask_app = create_app(cfg, resolver=BusinessDateResolver(clock=lambda: FIXED_NOW))
    flask_app.config.update(TESTING=True)

    # Provider discovery is cached on the client; prime it so no request is made
    from tenant_console.api.auth import get_oidc_client
    oidc_client = get_oidc_client()
    oidc_client.server_metadata.update(PROVIDER_METADATA, _loaded_at=time.time())

    def _stub_userinfo(url, *args, **kwargs):
        if url == PROVIDER_METADATA["userinfo_endpoint"]:
            return StubResponse({})
        raise RuntimeError(f"Unexpected OIDC call in unit test: {url}")

    monkeypatch.setattr(oidc_client, "get", _stub_userinfo)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return {"private_key": private_key, "public_pem": public_pem}


def public_jwks(rsa_key_pair, kid: str = "default-key-id") -> dict:
    jwk = JsonWebKey.import_key(rsa_key_pair["public_pem"], {"kty": "RSA"}).as_dict()
    jwk.update(kid=kid, use="sig", alg="RS256")
    return {"keys": [jwk]}


def create_valid_jwt(rsa_key_pair: dict, issuer: str = ISSUER, roles: Optional[list[str]] = None,
                     exp_offset: int = 3600, kid: str = "default-key-id") -> str:
    """Create an RS256-signed access token carrying Entra-style roles."""
    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    payload = {
        "iss": issuer,
        "aud": "tenant-console",
        "sub": "user-123",
        "exp": now + exp_offset,
        "iat": now,
        "preferred_username": "alice@example.test",
        "roles": roles if roles is not None else ["Console.Admin"],
    }
    token = authlib_jwt.encode(header, payload, rsa_key_pair["private_key"])
    return token.decode("utf-8") if isinstance(token, bytes) else token


# ─────────────────────────────────────────────────────────────────────────────
# Authentication Helpers
# ─────────────────────────────────────────────────────────────────────────────
def authenticate_with_roles(client, roles: list[str], username: str = "alice@example.test"):
    """Authenticate test client with specific roles."""
    with client.session_transaction() as session:
        session["token"] = {"access_token": "stub", "id_token": "stub-id-token"}
        session["userinfo"] = {"preferred_username": username}
        session["id_claims"] = {"preferred_username": username, "roles": roles}


def get_csrf_token(client) -> str:
    """Get CSRF token from session."""
    client.get("/health")
    with client.session_transaction() as session:
        return session.get("_csrf_token", "")

