"""Authentication routes and OIDC helpers.

A single OpenID Connect provider is registered from ``OIDC_ISSUER``
(Microsoft Entra ID by default; any standards-compliant issuer works).
"""
from __future__ import annotations
import hashlib
import base64
import secrets
import string
from urllib.parse import urlencode

import requests

from flask import Blueprint, session, redirect, url_for, current_app, render_template
from authlib.integrations.flask_client import OAuth
from authlib.common.errors import AuthlibBaseError

bp = Blueprint("auth", __name__)

# Module-level OAuth instance (initialized by create_app)
oauth: OAuth = None
_client = None


def init_oauth(app, cfg):
    """Register the console's OIDC client."""
    global oauth, _client

    oauth = OAuth(app)
    _client = oauth.register(
        name="console",
        server_metadata_url=f"{cfg.oidc_issuer}/.well-known/openid-configuration",
        client_id=cfg.oidc_client_id,
        client_secret=cfg.oidc_client_secret or None,
        client_kwargs={"scope": cfg.oidc_scope, "response_mode": "query"},
        fetch_token=lambda: session.get("token"),
    )
    return oauth


def get_oidc_client():
    """Get the registered OIDC client."""
    if _client is None:
        raise RuntimeError("OIDC client not initialized. Call init_oauth first.")
    return _client


# ─────────────────────────────────────────────────────────────────────────────
# PKCE Helpers
# ─────────────────────────────────────────────────────────────────────────────
def _generate_code_verifier(length: int = 64) -> str:
    """Generate PKCE code verifier."""
    alphabet = string.ascii_letters + string.digits + "-._~"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _build_code_challenge(code_verifier: str) -> str:
    """Build PKCE code challenge from verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _end_session_endpoint(cfg) -> str:
    try:
        endpoint = get_oidc_client().load_server_metadata().get("end_session_endpoint")
    except (requests.RequestException, ValueError) as exc:
        current_app.logger.warning("Could not load provider metadata for logout: %s", exc)
        endpoint = None
    if endpoint:
        return endpoint
    # Entra ID issuers end with /v2.0; logout lives under /oauth2/v2.0/logout
    base_url = cfg.oidc_issuer.rstrip("/").removesuffix("/v2.0")
    return f"{base_url}/oauth2/v2.0/logout"


# ─────────────────────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/login")
def login():
    """Initiate OIDC login flow with PKCE."""
    cfg = current_app.config["APP_CONFIG"]
    client = get_oidc_client()

    code_verifier = _generate_code_verifier()
    session["pkce_code_verifier"] = code_verifier

    return client.authorize_redirect(
        redirect_uri=cfg.oidc_redirect_uri,
        code_challenge=_build_code_challenge(code_verifier),
        code_challenge_method="S256",
    )


@bp.route("/callback")
def callback():
    """Handle OIDC callback after successful authentication."""
    client = get_oidc_client()

    code_verifier = session.pop("pkce_code_verifier", None)
    if not code_verifier:
        return redirect(url_for("auth.login"))

    try:
        token = client.authorize_access_token(code_verifier=code_verifier)
    except AuthlibBaseError as exc:
        current_app.logger.warning("OIDC callback rejected: %s", exc)
        return redirect(url_for("auth.index"))

    session["token"] = token
    # authorize_access_token parses the ID token into "userinfo" when openid is requested
    session["id_claims"] = dict(token.get("userinfo") or {})
    session.pop("userinfo", None)

    from tenant_console.core.rbac import current_user_context
    _, _, _, roles = current_user_context()
    current_app.logger.info("[auth] Signed in; roles=%s", roles)

    return redirect(url_for("tenants.list_tenants"))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    """Clear the session and end the provider session."""
    cfg = current_app.config["APP_CONFIG"]

    token = session.get("token") or {}
    id_token = token.get("id_token")
    session.clear()

    params = {"post_logout_redirect_uri": cfg.post_logout_redirect_uri}
    if id_token:
        params["id_token_hint"] = id_token
    else:
        params["client_id"] = cfg.oidc_client_id

    return redirect(f"{_end_session_endpoint(cfg)}?{urlencode(params)}")


@bp.route("/")
def index():
    """Home page."""
    from tenant_console.core.rbac import is_authenticated, current_username

    username = current_username() if is_authenticated() else ""
    return render_template("index.html", title="Tenant Console", username=username)
