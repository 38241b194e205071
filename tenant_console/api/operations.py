"""JSON endpoints for PAR Brink and UKG Ready operations.

Responses use the normalized ``{success, data | error, details}`` shape and
carry the backend's status code (502 when the backend was unreachable).
"""
from __future__ import annotations
from typing import Optional

from flask import Blueprint, jsonify, request

from tenant_console.api.decorators import require_console_user
from tenant_console.api.services import get_services
from tenant_console.core.backend import ApiResponse, ErrorKind
from tenant_console.core.business_date import InvalidTimezone
from tenant_console.core.validators import validate_business_date

bp = Blueprint("operations", __name__)


def _respond(result: ApiResponse):
    if result.ok:
        return jsonify(result.to_dict()), result.status_code or 200
    return jsonify(result.to_dict()), result.error_status


def _bad_request(message: str):
    return _respond(ApiResponse.failure(message, ErrorKind.INVALID_PAYLOAD, status_code=400))


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _location(payload: dict) -> tuple[str, str]:
    """Raises ValueError when either token is missing or not a string."""
    location_token = payload.get("locationToken", "")
    access_token = payload.get("accessToken", "")
    if not isinstance(location_token, str) or not isinstance(access_token, str):
        raise ValueError("locationToken and accessToken must be strings")
    location_token, access_token = location_token.strip(), access_token.strip()
    if not location_token or not access_token:
        raise ValueError("locationToken and accessToken are required")
    return location_token, access_token


def _optional_date(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    return validate_business_date(value)


@bp.route("/business-date")
@require_console_user
def business_date():
    """Current business date for ?timezone= (defaults to the configured zone)."""
    resolver = get_services().resolver
    tz_name = request.args.get("timezone", resolver.default_timezone)
    try:
        value = resolver.today(tz_name)
    except InvalidTimezone as exc:
        return _bad_request(str(exc))
    return _respond(ApiResponse.success({"businessDate": value, "timezone": tz_name}, status_code=200))


@bp.route("/par-brink/dashboard", methods=["POST"])
@require_console_user
def par_brink_dashboard():
    payload = _payload()
    try:
        location_token, access_token = _location(payload)
        business_date = _optional_date(payload, "businessDate")
        result = get_services().par_brink.dashboard(
            location_token,
            access_token,
            business_date=business_date,
            timezone=payload.get("timezone"),
        )
    except ValueError as exc:
        # InvalidTimezone included
        return _bad_request(str(exc))
    return _respond(result)


@bp.route("/par-brink/clocked-in", methods=["POST"])
@require_console_user
def par_brink_clocked_in():
    payload = _payload()
    try:
        location_token, access_token = _location(payload)
        business_date = _optional_date(payload, "businessDate")
    except ValueError as exc:
        return _bad_request(str(exc))
    return _respond(get_services().par_brink.clocked_in(location_token, access_token, business_date))


@bp.route("/par-brink/tips", methods=["POST"])
@require_console_user
def par_brink_tips():
    payload = _payload()
    try:
        location_token, access_token = _location(payload)
        start_date = _optional_date(payload, "startDate")
    except ValueError as exc:
        return _bad_request(str(exc))
    return _respond(get_services().par_brink.tips(location_token, access_token, start_date))


@bp.route("/par-brink/tills", methods=["POST"])
@require_console_user
def par_brink_tills():
    payload = _payload()
    try:
        location_token, access_token = _location(payload)
        business_date = _optional_date(payload, "businessDate")
    except ValueError as exc:
        return _bad_request(str(exc))
    return _respond(get_services().par_brink.tills(location_token, access_token, business_date))


@bp.route("/par-brink/sales", methods=["POST"])
@require_console_user
def par_brink_sales():
    payload = _payload()
    if not payload:
        return _bad_request("Location payload is required")
    return _respond(get_services().par_brink.sales(payload))


@bp.route("/par-brink/employees", methods=["POST"])
@require_console_user
def par_brink_employees():
    payload = _payload()
    if not payload:
        return _bad_request("Location payload is required")
    return _respond(get_services().par_brink.employees(payload))


@bp.route("/par-brink/configurations")
@require_console_user
def par_brink_configurations():
    return _respond(get_services().par_brink.configurations())


@bp.route("/ukg-ready/<tenant_id>/<module>/<action>", methods=["GET", "POST"])
@require_console_user
def ukg_ready(tenant_id: str, module: str, action: str):
    data = _payload() if request.method == "POST" else None
    try:
        result = get_services().ukg_ready.call(tenant_id, module, action, data)
    except ValueError as exc:
        return _bad_request(str(exc))
    return _respond(result)
