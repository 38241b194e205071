"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the console with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import ipaddress
import hmac
import secrets
from tempfile import gettempdir
from typing import Optional
import os

from flask import Flask, session, request, g, abort, redirect, url_for
from flask_session import Session
from werkzeug.middleware.proxy_fix import ProxyFix

from tenant_console.config import AppConfig, load_settings
from tenant_console.core.business_date import BusinessDateResolver


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, resolver: Optional[BusinessDateResolver] = None) -> Flask:
    """Create and configure the console.

    Args:
        cfg: Explicit configuration (loaded from the environment when omitted)
        resolver: Business date resolver (a clock-injected one in tests)
    """
    cfg = cfg or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    # Flask session configuration
    app.config["SECRET_KEY"] = cfg.secret_key
    if cfg.secret_key_fallbacks:
        app.config["SECRET_KEY_FALLBACKS"] = cfg.secret_key_fallbacks

    app.config["SESSION_TYPE"] = "filesystem"
    session_dir = cfg.session_dir or os.path.join(gettempdir(), "tenant_console_flask_session")
    os.makedirs(session_dir, exist_ok=True)
    app.config["SESSION_FILE_DIR"] = session_dir

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = cfg.session_cookie_secure
    app.config["OIDC_TOKEN_REFRESH_LEEWAY"] = int(os.environ.get("OIDC_TOKEN_REFRESH_LEEWAY", "60"))

    Session(app)

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    trusted_proxy_networks = _parse_networks(cfg.trusted_proxy_ips)
    app.config["TRUSTED_PROXY_NETWORKS"] = trusted_proxy_networks
    app.config["CSRF_SESSION_KEY"] = "_csrf_token"

    from tenant_console.api import services
    services.init_services(app, cfg, resolver)

    from tenant_console.api import auth
    auth.init_oauth(app, cfg)

    from tenant_console.api import errors, health, operations, tenants, third_party

    app.register_blueprint(auth.bp)
    app.register_blueprint(health.bp)
    app.register_blueprint(tenants.bp, url_prefix="/tenants")
    app.register_blueprint(third_party.bp, url_prefix="/third-party")
    app.register_blueprint(operations.bp, url_prefix="/operations")

    errors.register_error_handlers(app)
    _register_middleware(app, trusted_proxy_networks)
    _register_context_processors(app, cfg)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[console] Mode={mode_label}; backend={cfg.backend_api_base_url}")
    if cfg.demo_mode:
        print("[console] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


def _parse_networks(raw: str) -> list:
    networks = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            print(f"[console] Ignoring invalid TRUSTED_PROXY_IPS entry: {entry}")
    return networks


def _register_middleware(app: Flask, trusted_proxy_networks: list):
    """Register before_request middleware."""

    @app.before_request
    def enforce_proxy_headers() -> None:
        """Validate proxy headers from trusted sources only."""
        # ProxyFix keeps the pre-rewrite environ values under this key
        original_remote = request.environ.get("werkzeug.proxy_fix.orig", {}).get("REMOTE_ADDR")
        if original_remote and request.headers.get("X-Forwarded-For"):
            try:
                address = ipaddress.ip_address(original_remote)
            except ValueError:
                abort(400, description="Invalid proxy address")
            if not any(address in network for network in trusted_proxy_networks):
                abort(400, description="Untrusted proxy")

        forwarded_proto = request.headers.get("X-Forwarded-Proto")
        if forwarded_proto and forwarded_proto != "https":
            abort(400, description="Invalid forwarded protocol")

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for and "," in forwarded_for:
            abort(400, description="Multiple forwarded clients not permitted")

        g.csrf_token = _generate_csrf_token()

    @app.before_request
    def enforce_csrf() -> None:
        """Validate CSRF token for state-changing requests (form field or X-CSRF-Token)."""
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return

        submitted_token = "" if request.is_json else request.form.get("csrf_token", "")
        if not submitted_token:
            submitted_token = request.headers.get("X-CSRF-Token", "")

        session_token = session.get(app.config["CSRF_SESSION_KEY"], "")
        if not session_token or not submitted_token or not hmac.compare_digest(session_token, submitted_token):
            abort(400, description="CSRF validation failed")

    @app.before_request
    def ensure_fresh_token():
        """Refresh OIDC token if expiring soon."""
        from tenant_console.core.rbac import is_authenticated, refresh_session_token

        if not is_authenticated():
            return

        endpoint = (request.endpoint or "").rsplit(".", 1)[-1]
        if endpoint in {"login", "logout", "callback", "health_check", "readiness_check", "static"}:
            return

        outcome = refresh_session_token()
        if outcome is False and not is_authenticated():
            return redirect(url_for("auth.login"))


def _register_context_processors(app: Flask, cfg: AppConfig):
    """Register context processors for templates."""

    @app.context_processor
    def inject_global_context():
        from tenant_console.core.rbac import is_authenticated

        return {
            "csrf_token": g.get("csrf_token") or _generate_csrf_token(),
            "is_authenticated": is_authenticated(),
            "demo_mode": cfg.demo_mode,
            "default_timezone": cfg.default_timezone,
        }


def _generate_csrf_token() -> str:
    """Generate or retrieve CSRF token for current session."""
    token = session.get("_csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["_csrf_token"] = token
    return token
