"""Flask blueprints: auth, health, tenants, third_party, operations."""
