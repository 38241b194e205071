"""Input validation helpers for console forms."""
from __future__ import annotations
from datetime import date
from urllib.parse import urlparse

from tenant_console.core.business_date import InvalidTimezone, load_timezone


def validate_tenant_name(name: str) -> str:
    """Validate tenant display name.

    Args:
        name: Raw tenant name input

    Returns:
        Trimmed name

    Raises:
        ValueError: If name is invalid
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Tenant name is required")
    if len(name) > 128:
        raise ValueError("Tenant name exceeds maximum length")

    # Prevent injection attacks
    if any(char in name for char in "<>\"'`;&|$"):
        raise ValueError("Tenant name contains invalid characters")

    return name


def validate_company_id(company_id: str) -> str:
    """Company ids are numeric account identifiers."""
    company_id = (company_id or "").strip()
    if not company_id:
        raise ValueError("Company ID is required")
    if not company_id.isdigit():
        raise ValueError("Company ID must contain digits only")
    return company_id


def validate_base_url(url: str, field: str = "Base URL") -> str:
    """Validate an http(s) URL and strip the trailing slash.

    Raises:
        ValueError: If URL is not absolute http/https
    """
    url = (url or "").strip()
    if not url:
        raise ValueError(f"{field} is required")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{field} must be an absolute http(s) URL")
    return url.rstrip("/")


def validate_client_id(client_id: str) -> str:
    client_id = (client_id or "").strip()
    if not client_id:
        raise ValueError("Client ID is required")
    if len(client_id) > 256 or any(char.isspace() for char in client_id):
        raise ValueError("Client ID is invalid")
    return client_id


def validate_timezone(tz_name: str) -> str:
    tz_name = (tz_name or "").strip()
    try:
        load_timezone(tz_name)
    except InvalidTimezone as exc:
        raise ValueError(str(exc)) from exc
    return tz_name


def validate_business_date(value: str) -> str:
    """Strict YYYY-MM-DD."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid business date: {value!r} (expected YYYY-MM-DD)")
    value = value.strip()
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid business date: {value!r} (expected YYYY-MM-DD)") from None
    if parsed.isoformat() != value:
        raise ValueError(f"Invalid business date: {value!r} (expected YYYY-MM-DD)")
    return value
