"""Tenant console: operator UI for tenant credentials and third-party API definitions."""
