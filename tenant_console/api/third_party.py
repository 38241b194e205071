"""Third-party API definition routes."""
from __future__ import annotations
import uuid

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from werkzeug.datastructures import MultiDict

from tenant_console.api.decorators import require_console_user
from tenant_console.api.services import get_services
from tenant_console.core.backend import BackendAPIError, ThirdPartyApiNotFoundError
from tenant_console.core.integrations import (
    AUTH_TYPE_LABELS,
    GRANT_TYPES,
    HTTP_METHODS,
    AuthType,
    EndpointDefinition,
    RateLimits,
    ThirdPartyApi,
    build_auth_headers,
    coerce_auth_type,
    parse_auth_config,
)
from tenant_console.core.validators import validate_base_url

bp = Blueprint("third_party", __name__)

RATE_LIMIT_FIELDS = ("requestsPerSecond", "requestsPerMinute", "requestsPerHour", "requestsPerDay")


def _parse_custom_headers(text: str) -> dict[str, str]:
    """One ``Name: value`` pair per line."""
    headers = {}
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header line: {line.strip()!r} (expected 'Name: value')")
        headers[name.strip()] = value.strip()
    return headers


def auth_fields_from_form(auth_type: AuthType, form: MultiDict) -> dict:
    """Pick only the selected variant's fields out of a form posting all of them."""
    if auth_type is AuthType.API_KEY:
        return {"apiKeyHeader": form.get("apiKeyHeader"), "apiKeyValue": form.get("apiKeyValue")}
    if auth_type is AuthType.BEARER:
        return {"bearerToken": form.get("bearerToken")}
    if auth_type is AuthType.BASIC:
        return {"username": form.get("username"), "password": form.get("password")}
    if auth_type is AuthType.OAUTH2:
        return {"oauth2Config": {
            "clientId": form.get("oauth2ClientId"),
            "clientSecret": form.get("oauth2ClientSecret"),
            "tokenUrl": form.get("oauth2TokenUrl"),
            "scope": form.get("oauth2Scope") or None,
            "grantType": form.get("oauth2GrantType") or "client_credentials",
        }}
    if auth_type is AuthType.CUSTOM:
        return {"customHeaders": _parse_custom_headers(form.get("customHeaders", ""))}
    return {}


def _endpoints_from_form(form: MultiDict) -> list[EndpointDefinition]:
    endpoints = []
    rows = zip(
        form.getlist("endpoint_name"),
        form.getlist("endpoint_path"),
        form.getlist("endpoint_method"),
    )
    for name, path, method in rows:
        if not name.strip() and not path.strip():
            continue
        if not path.strip().startswith("/"):
            raise ValueError(f"Endpoint path must start with '/': {path!r}")
        endpoints.append(EndpointDefinition(
            id=str(uuid.uuid4()),
            name=name.strip(),
            path=path.strip(),
            method=(method or "GET").upper(),
        ))
    return endpoints


def _rate_limits_from_form(form: MultiDict) -> RateLimits | None:
    raw = {}
    for key in RATE_LIMIT_FIELDS:
        value = form.get(key, "").strip()
        if not value:
            continue
        try:
            raw[key] = int(value)
        except ValueError:
            raise ValueError(f"{key} must be a whole number") from None
    return RateLimits.from_dict(raw) if raw else None


def api_from_form(form: MultiDict) -> ThirdPartyApi:
    """Build a ThirdPartyApi from the definition form.

    Raises:
        ValueError: On the first invalid field
    """
    name = form.get("name", "").strip()
    if not name:
        raise ValueError("API name is required")
    auth_type = coerce_auth_type(form.get("auth_type") or AuthType.NONE.value)
    return ThirdPartyApi(
        name=name,
        category=form.get("category", "").strip(),
        base_url=validate_base_url(form.get("base_url", "")),
        description=form.get("description", "").strip() or None,
        version=form.get("version", "").strip() or None,
        auth=parse_auth_config(auth_type, auth_fields_from_form(auth_type, form)),
        endpoints=_endpoints_from_form(form),
        rate_limits=_rate_limits_from_form(form),
        health_check_endpoint=form.get("health_check_endpoint", "").strip() or None,
    )


def _render_form(form: MultiDict | None = None, status: int = 200):
    return render_template(
        "third_party/form.html",
        title="Add Third-Party API",
        form=form or MultiDict(),
        auth_types=AUTH_TYPE_LABELS,
        grant_types=sorted(GRANT_TYPES),
        http_methods=sorted(HTTP_METHODS),
    ), status


@bp.route("/")
@require_console_user
def list_apis():
    result = get_services().third_party.list_apis()
    if not result.ok:
        current_app.logger.error("Failed to load third-party APIs: %s", result.error)
    return render_template(
        "third_party/list.html",
        title="Third-Party APIs",
        apis=result.data if result.ok else [],
        load_error=None if result.ok else result.error,
    )


@bp.route("/new")
@require_console_user
def new_api():
    return _render_form()


@bp.route("/", methods=["POST"])
@require_console_user
def create_api():
    services = get_services()
    try:
        api = api_from_form(request.form)
    except ValueError as exc:
        flash(str(exc), "error")
        return _render_form(request.form, status=400)

    if request.form.get("enhanced") == "1":
        result = services.third_party.create_api_enhanced(api)
    else:
        result = services.third_party.create_api(api)
    if not result.ok:
        flash(f"Failed to save API: {result.error}", "error")
        return _render_form(request.form, status=result.error_status)

    flash(f"API '{api.name}' created successfully", "success")
    return redirect(url_for("third_party.list_apis"))


@bp.route("/<api_id>/toggle", methods=["POST"])
@require_console_user
def toggle_api(api_id: str):
    services = get_services()
    try:
        api = services.third_party.require_api(api_id)
    except BackendAPIError as exc:
        flash(f"Failed to update API: {exc.message}", "error")
        return redirect(url_for("third_party.list_apis"))

    result = services.third_party.update_api(api_id, {"isActive": not api.is_active})
    if result.ok:
        flash(f"API {'activated' if not api.is_active else 'deactivated'} successfully", "success")
    else:
        flash(f"Failed to update API: {result.error}", "error")
    return redirect(url_for("third_party.list_apis"))


@bp.route("/<api_id>/delete", methods=["POST"])
@require_console_user
def delete_api(api_id: str):
    result = get_services().third_party.delete_api(api_id)
    if result.ok:
        flash("API deleted successfully", "success")
    else:
        flash(f"Failed to delete API: {result.error}", "error")
    return redirect(url_for("third_party.list_apis"))


@bp.route("/<api_id>/test", methods=["POST"])
@require_console_user
def test_api(api_id: str):
    services = get_services()
    try:
        api = services.third_party.require_api(api_id)
    except ThirdPartyApiNotFoundError:
        flash("API not found", "error")
        return redirect(url_for("third_party.list_apis"))
    except BackendAPIError as exc:
        flash(f"API test failed: {exc.message}", "error")
        return redirect(url_for("third_party.list_apis"))

    result = services.third_party.test_connection(api, {
        "testUrl": api.health_check_url,
        "headers": build_auth_headers(api.auth),
    })
    if result.ok:
        flash("API test successful!", "success")
    else:
        flash(f"API test failed: {result.error}", "error")
    return redirect(url_for("third_party.list_apis"))
