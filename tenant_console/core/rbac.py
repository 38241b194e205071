"""Role-Based Access Control helpers."""
from __future__ import annotations
import logging
import time
from typing import Optional

from flask import session, current_app
from authlib.jose import JsonWebKey, jwt
from authlib.jose.errors import JoseError
import requests

logger = logging.getLogger(__name__)

# JWKS Cache
_JWKS_CACHE: Optional[JsonWebKey] = None


def collect_roles(*sources) -> list[str]:
    """Collect roles from ID claims, userinfo, and access token claims.

    Entra ID style tokens carry top-level ``roles`` and ``groups`` arrays;
    Keycloak style tokens carry ``realm_access.roles``.
    """
    roles: list[str] = []
    for source in sources:
        if not isinstance(source, dict):
            continue
        for key in ("roles", "groups"):
            values = source.get(key)
            if isinstance(values, list):
                roles.extend(str(r) for r in values if str(r) not in roles)
        realm_access = source.get("realm_access")
        if isinstance(realm_access, dict):
            roles.extend(r for r in realm_access.get("roles", []) if r not in roles)
    return roles


def _server_metadata() -> dict:
    from tenant_console.api.auth import get_oidc_client
    return get_oidc_client().load_server_metadata()


def reset_jwks_cache(key_set: Optional[JsonWebKey] = None) -> None:
    global _JWKS_CACHE
    _JWKS_CACHE = key_set


def decode_access_token(access_token: str, issuer: str) -> dict:
    """Decode and validate access token JWT. Opaque or invalid tokens yield {}."""
    global _JWKS_CACHE

    if not access_token:
        return {}

    try:
        if _JWKS_CACHE is None:
            jwks_uri = _server_metadata().get("jwks_uri")
            if not jwks_uri:
                raise RuntimeError("jwks_uri missing from provider metadata")
            resp = requests.get(jwks_uri, timeout=5)
            resp.raise_for_status()
            _JWKS_CACHE = JsonWebKey.import_key_set(resp.json())

        claims = jwt.decode(
            access_token,
            key=_JWKS_CACHE,
            claims_options={"iss": {"values": [issuer]}},
        )
        claims.validate()
        return dict(claims)
    except (JoseError, RuntimeError, ValueError, requests.RequestException) as exc:
        # Entra ID access tokens for Graph are not verifiable by the client.
        logger.debug("Access token not decodable: %s", exc)
        return {}


def is_authenticated() -> bool:
    """Check if user is authenticated."""
    return bool(session.get("token"))


def user_has_role(role: str) -> bool:
    """Check if current user has specific role."""
    if not is_authenticated():
        return False

    _, _, _, roles = current_user_context()
    return role.lower() in [r.lower() for r in roles]


def is_console_user(roles: list[str], allowed_roles: list[str]) -> bool:
    """Any signed-in user when no roles are configured."""
    if not allowed_roles:
        return True
    roles_lower = {role.lower() for role in roles}
    return any(role.lower() in roles_lower for role in allowed_roles)


def current_username() -> str:
    """Get current user's username."""
    _, id_claims, userinfo, _ = current_user_context()
    for source in (userinfo or {}, id_claims or {}):
        if not isinstance(source, dict):
            continue
        for key in ("preferred_username", "email", "name"):
            value = source.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


def current_user_context() -> tuple[Optional[dict], dict, dict, list[str]]:
    """Get current user's token, claims, userinfo, and roles."""
    cfg = current_app.config["APP_CONFIG"]

    token = session.get("token")
    if not token:
        return None, {}, {}, []

    userinfo = session.get("userinfo")
    if userinfo is None:
        from tenant_console.api.auth import get_oidc_client
        userinfo_url = _server_metadata().get("userinfo_endpoint")
        userinfo = {}
        if userinfo_url:
            try:
                userinfo = get_oidc_client().get(userinfo_url, token=token).json()
            except (requests.RequestException, ValueError) as exc:
                current_app.logger.warning("Userinfo lookup failed: %s", exc)
        session["userinfo"] = userinfo

    id_claims = session.get("id_claims") or {}
    access_claims = decode_access_token(token.get("access_token"), cfg.oidc_issuer)
    roles = collect_roles(id_claims, userinfo, access_claims)

    return token, id_claims, userinfo, roles


def refresh_session_token() -> Optional[bool]:
    """Refresh user's session token if needed.

    Returns:
        None if no token or not expired
        True if refresh successful
        False if refresh failed
    """
    cfg = current_app.config["APP_CONFIG"]

    token = session.get("token") or {}
    if not token:
        return None

    now = time.time()
    expires_at = token.get("expires_at")

    if expires_at is None:
        expires_in = token.get("expires_in")
        if expires_in is not None:
            try:
                expires_at = now + int(expires_in)
                token["expires_at"] = expires_at
                session["token"] = token
            except (TypeError, ValueError):
                pass

    if expires_at is None:
        return None

    token_refresh_leeway = int(current_app.config.get("OIDC_TOKEN_REFRESH_LEEWAY", 60))
    if expires_at - token_refresh_leeway > now:
        return None

    refresh_token = token.get("refresh_token")
    if not refresh_token:
        current_app.logger.warning("Session access token expired without refresh token; clearing session.")
        clear_session_tokens()
        return False

    try:
        token_endpoint = _server_metadata().get("token_endpoint")
        if not token_endpoint:
            raise RuntimeError("token_endpoint missing from provider metadata")
        response = requests.post(
            token_endpoint,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": cfg.oidc_client_id,
                "client_secret": cfg.oidc_client_secret,
            },
            timeout=10,
        )
        response.raise_for_status()
        new_token = response.json()
    except (requests.RequestException, RuntimeError, ValueError) as exc:
        current_app.logger.warning("Token refresh failed: %s", exc)
        clear_session_tokens()
        return False

    if not new_token:
        clear_session_tokens()
        return False

    if "refresh_token" not in new_token:
        new_token["refresh_token"] = refresh_token

    expires_in = new_token.get("expires_in")
    if expires_in is not None:
        try:
            new_token["expires_at"] = time.time() + int(expires_in)
        except (TypeError, ValueError):
            new_token.pop("expires_at", None)

    session["token"] = new_token
    session.pop("userinfo", None)
    return True


def clear_session_tokens() -> None:
    """Clear all session tokens."""
    session.pop("token", None)
    session.pop("userinfo", None)
    session.pop("id_claims", None)
