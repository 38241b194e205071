"""Tenant credential management routes."""
from __future__ import annotations

from flask import Blueprint, current_app, flash, jsonify, redirect, render_template, request, url_for

from tenant_console.api.decorators import require_console_user
from tenant_console.api.services import get_services
from tenant_console.core.backend import (
    BackendAPIError,
    CreateTenantRequest,
    OAuthTestRequest,
    TenantConfig,
    TenantNotFoundError,
    UpdateTenantRequest,
    generate_tenant_id,
    tenant_to_view,
)
from tenant_console.core.validators import (
    validate_base_url,
    validate_client_id,
    validate_company_id,
    validate_tenant_name,
)

bp = Blueprint("tenants", __name__)


def _read_form(require_secret: bool) -> dict:
    """Validate the tenant form.

    Raises:
        ValueError: On the first invalid field
    """
    secret = request.form.get("client_secret", "").strip()
    if require_secret and not secret:
        raise ValueError("Client secret is required")
    return {
        "tenant_name": validate_tenant_name(request.form.get("tenant_name", "")),
        "company_id": validate_company_id(request.form.get("company_id", "")),
        "base_url": validate_base_url(request.form.get("base_url", "")),
        "client_id": validate_client_id(request.form.get("client_id", "")),
        "client_secret": secret,
    }


def _render_form(form: dict, editing_id: str | None = None, status: int = 200):
    return render_template(
        "tenants/form.html",
        title="Edit Tenant" if editing_id else "Add Tenant",
        form=form,
        editing_id=editing_id,
    ), status


@bp.route("/")
@require_console_user
def list_tenants():
    """Tenant list with locally stored display names merged in."""
    services = get_services()
    result = services.tenants.list_tenants()
    tenants = []
    if result.ok:
        names = services.tenant_names.all()
        tenants = [tenant_to_view(t, names.get(t.id)) for t in result.data]
    else:
        current_app.logger.error("Failed to load tenants: %s", result.error)

    return render_template(
        "tenants/list.html",
        title="Tenant Management",
        tenants=tenants,
        load_error=None if result.ok else result.error,
    )


@bp.route("/new")
@require_console_user
def new_tenant():
    cfg = current_app.config["APP_CONFIG"]
    form = {
        "tenant_id": generate_tenant_id(),
        "tenant_name": "",
        "company_id": cfg.default_company_id,
        "base_url": cfg.default_tenant_base_url,
        "client_id": "",
    }
    return _render_form(form)


@bp.route("/", methods=["POST"])
@require_console_user
def create_tenant():
    services = get_services()
    tenant_id = request.form.get("tenant_id") or generate_tenant_id()
    try:
        fields = _read_form(require_secret=True)
    except ValueError as exc:
        flash(str(exc), "error")
        return _render_form({"tenant_id": tenant_id, **request.form}, status=400)

    result = services.tenants.create_tenant(CreateTenantRequest(
        description=f"Tenant configuration for {fields['tenant_name']}",
        **fields,
    ))
    if not result.ok:
        flash(f"Failed to save tenant: {result.error}", "error")
        return _render_form({"tenant_id": tenant_id, **request.form}, status=result.error_status)

    # Prefer the id the backend assigned
    if isinstance(result.data, dict) and result.data.get("id"):
        tenant_id = result.data["id"]
    services.tenant_names.save(tenant_id, fields["tenant_name"])
    current_app.logger.info("Tenant %s created", tenant_id)
    flash("Tenant created successfully", "success")
    return redirect(url_for("tenants.list_tenants"))


@bp.route("/<tenant_id>/edit")
@require_console_user
def edit_tenant(tenant_id: str):
    services = get_services()
    try:
        tenant = services.tenants.require_tenant(tenant_id)
    except TenantNotFoundError:
        flash("Tenant not found", "error")
        return redirect(url_for("tenants.list_tenants"))
    except BackendAPIError as exc:
        flash(f"Failed to load tenant details: {exc.message}", "error")
        return redirect(url_for("tenants.list_tenants"))

    form = {
        "tenant_id": tenant.id,
        "tenant_name": services.tenant_names.get(tenant.id) or tenant.tenant_name,
        "company_id": tenant.company_id,
        "base_url": tenant.base_url,
        "client_id": tenant.client_id,
        "is_active": "true" if tenant.is_active else "false",
    }
    return _render_form(form, editing_id=tenant.id)


@bp.route("/<tenant_id>", methods=["POST"])
@require_console_user
def update_tenant(tenant_id: str):
    services = get_services()
    try:
        fields = _read_form(require_secret=False)
    except ValueError as exc:
        flash(str(exc), "error")
        return _render_form({"tenant_id": tenant_id, **request.form}, editing_id=tenant_id, status=400)

    update = UpdateTenantRequest(
        id=tenant_id,
        description=f"Tenant configuration for {fields['tenant_name']}",
        is_active=request.form.get("is_active", "true").lower() == "true",
        **fields,
    )
    result = services.tenants.update_tenant(tenant_id, update)
    if not result.ok:
        flash(f"Failed to save tenant: {result.error}", "error")
        return _render_form(
            {"tenant_id": tenant_id, **request.form},
            editing_id=tenant_id,
            status=result.error_status,
        )

    services.tenant_names.save(tenant_id, fields["tenant_name"])
    flash("Tenant updated successfully", "success")
    return redirect(url_for("tenants.list_tenants"))


@bp.route("/<tenant_id>/toggle", methods=["POST"])
@require_console_user
def toggle_tenant(tenant_id: str):
    services = get_services()
    try:
        tenant: TenantConfig = services.tenants.require_tenant(tenant_id)
    except TenantNotFoundError:
        flash("Tenant not found", "error")
        return redirect(url_for("tenants.list_tenants"))
    except BackendAPIError as exc:
        flash(f"Failed to update tenant status: {exc.message}", "error")
        return redirect(url_for("tenants.list_tenants"))

    new_status = not tenant.is_active
    result = services.tenants.set_tenant_active(tenant, new_status)
    if result.ok:
        flash(f"Tenant {'activated' if new_status else 'deactivated'} successfully", "success")
    else:
        flash(f"Failed to update tenant status: {result.error}", "error")
    return redirect(url_for("tenants.list_tenants"))


@bp.route("/<tenant_id>/delete", methods=["POST"])
@require_console_user
def delete_tenant(tenant_id: str):
    services = get_services()
    result = services.tenants.delete_tenant(tenant_id)
    if not result.ok:
        flash(f"Failed to delete tenant: {result.error}", "error")
        return redirect(url_for("tenants.list_tenants"))

    services.tenant_names.remove(tenant_id)
    current_app.logger.info("Tenant %s deleted", tenant_id)
    flash("Tenant deleted successfully", "success")
    return redirect(url_for("tenants.list_tenants"))


@bp.route("/<tenant_id>/test-token", methods=["POST"])
@require_console_user
def test_token(tenant_id: str):
    """Ask the backend to obtain an OAuth token with the tenant's credentials."""
    services = get_services()
    try:
        tenant = services.tenants.require_tenant(tenant_id)
    except BackendAPIError as exc:
        flash(f"OAuth test failed: {exc.message}", "error")
        return redirect(url_for("tenants.list_tenants"))

    result = services.tenants.test_oauth_token(OAuthTestRequest(
        base_url=tenant.base_url,
        client_id=tenant.client_id,
        client_secret=request.form.get("client_secret", ""),
        company_id=tenant.company_id,
    ))
    if result.ok and result.data:
        expires_in = result.data.get("expires_in") if isinstance(result.data, dict) else None
        detail = f"Token expires in {expires_in} seconds" if expires_in else "Token obtained successfully"
        flash(f"Token test successful! {detail}", "success")
    else:
        flash(f"OAuth test failed: {result.error or 'Token test failed'}", "error")
    return redirect(url_for("tenants.list_tenants"))


@bp.route("/<tenant_id>/credentials")
@require_console_user
def tenant_credentials(tenant_id: str):
    """Credential metadata as JSON (the secret itself is never returned)."""
    result = get_services().tenants.get_tenant_credentials(tenant_id)
    status = 200 if result.ok else result.error_status
    return jsonify(result.to_dict()), status
