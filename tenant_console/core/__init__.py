"""Core Logic Module

Console logic independent of Flask request handling.

Module Structure:
    - backend/          : HTTP client and services for the integration backend
    - business_date.py  : Business date resolution (early-morning rollover)
    - integrations.py   : Typed third-party API definitions and auth variants
    - tenant_names.py   : Local tenant display-name store
    - rbac.py           : Session/role helpers (requires Flask)
    - validators.py     : Form input validation

Usage Pattern:
    Modules are NOT auto-imported so that the backend client and the
    business date resolver can be used without Flask installed:
        from tenant_console.core.business_date import resolve_business_date
        from tenant_console.core.backend import BackendClient, TenantService
"""
