"""Flask decorators for console access control."""
from __future__ import annotations
from functools import wraps

from flask import current_app, jsonify, redirect, render_template, request, url_for

from tenant_console.core.rbac import current_user_context, is_authenticated, is_console_user


def _wants_json() -> bool:
    return request.path.startswith("/operations") or (
        request.accept_mimetypes.accept_json and not request.accept_mimetypes.accept_html
    )


def require_console_user(fn):
    """Require a signed-in user holding one of CONSOLE_ALLOWED_ROLES (if any are set)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not is_authenticated():
            if _wants_json():
                return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401
            return redirect(url_for("auth.login"), code=302)

        cfg = current_app.config["APP_CONFIG"]
        _, _, _, roles = current_user_context()

        if not is_console_user(roles, cfg.console_allowed_roles):
            required = ", ".join(cfg.console_allowed_roles)
            current_app.logger.warning("Console access denied; roles=%s required=%s", roles, required)
            if _wants_json():
                return jsonify({"error": "Forbidden", "message": f"Required role: {required}"}), 403
            return render_template(
                "errors/403.html",
                title="Forbidden",
                required_role=required,
            ), 403

        return fn(*args, **kwargs)
    return wrapper
