"""Error handlers for the application."""
import traceback

from flask import jsonify, redirect, render_template, request, url_for
from werkzeug.exceptions import HTTPException

from tenant_console.core.backend import BackendAPIError

DEFAULT_FORBIDDEN_DESCRIPTION = (
    "You don't have the permission to access the requested resource. "
    "It is either read-protected or not readable by the server."
)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        if _wants_json():
            return jsonify({"error": "Bad Request", "message": error.description or str(error)}), 400
        return render_template(
            "errors/403.html",
            title="Bad Request",
            required_role="a valid request",
            message=error.description,
        ), 400

    @app.errorhandler(401)
    def unauthorized(error):
        if _wants_json():
            return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401
        return redirect(url_for("auth.login"))

    @app.errorhandler(403)
    def forbidden(error):
        required_role = "appropriate permissions"
        desc = str(getattr(error, "description", "") or "")
        if desc.startswith("Required role:"):
            required_role = desc.replace("Required role:", "").strip()
        elif desc and desc != DEFAULT_FORBIDDEN_DESCRIPTION:
            required_role = desc

        if _wants_json():
            if required_role == "appropriate permissions":
                message = "Insufficient permissions"
            else:
                message = f"Required role: {required_role}"
            return jsonify({"error": "Forbidden", "message": message}), 403
        return render_template(
            "errors/403.html",
            title="Forbidden",
            required_role=required_role,
        ), 403

    @app.errorhandler(404)
    def not_found(error):
        if _wants_json():
            return jsonify({"error": "Not Found", "message": "Resource not found"}), 404
        return render_template(
            "errors/403.html",
            title="Not Found",
            required_role="a valid URL",
        ), 404

    @app.errorhandler(BackendAPIError)
    def backend_error(error):
        """Backend failures that escaped a route (raised by unwrap/require_*)."""
        app.logger.warning("Backend error: %s", error)
        status = error.status_code if error.status_code and error.status_code >= 400 else 502
        if _wants_json():
            body = {"success": False, "error": error.message, "kind": error.kind}
            if error.details:
                body["details"] = error.details
            return jsonify(body), status
        return _render_500(error_message=error.message, show_debug=True), status

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error("Internal error: %s", error, exc_info=True)
        if _wants_json():
            return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
        show_details = app.debug or app.config["APP_CONFIG"].demo_mode
        return _render_500(traceback.format_exc() if show_details else None, show_details), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        app.logger.error("Unhandled exception: %s", error, exc_info=True)
        print(f"[ERROR UNHANDLED] {error}")

        if _wants_json():
            return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

        # Tracebacks only in debug/demo mode
        show_details = app.debug or app.config["APP_CONFIG"].demo_mode
        return _render_500(traceback.format_exc() if show_details else None, show_details), 500


def _render_500(error_message=None, show_debug=False):
    return render_template(
        "errors/500.html",
        title="Internal Server Error",
        error_message=error_message,
        show_debug=show_debug,
    )


def _wants_json():
    """Check if the client wants a JSON response."""
    # Operations endpoints always return JSON
    if request.path.startswith("/operations"):
        return True

    return request.accept_mimetypes.accept_json and \
        not request.accept_mimetypes.accept_html
