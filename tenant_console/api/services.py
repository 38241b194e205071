"""Per-application backend services, built once by create_app."""
from __future__ import annotations
from dataclasses import dataclass

from flask import Flask, current_app

from tenant_console.core.backend import (
    BackendClient,
    ParBrinkService,
    TenantService,
    ThirdPartyApiService,
    UkgReadyService,
)
from tenant_console.core.business_date import BusinessDateResolver
from tenant_console.core.tenant_names import TenantNameStore

EXTENSION_KEY = "tenant_console"


@dataclass
class ConsoleServices:
    client: BackendClient
    resolver: BusinessDateResolver
    tenants: TenantService
    third_party: ThirdPartyApiService
    par_brink: ParBrinkService
    ukg_ready: UkgReadyService
    tenant_names: TenantNameStore

    @classmethod
    def from_config(cls, cfg, resolver: BusinessDateResolver | None = None) -> "ConsoleServices":
        client = BackendClient.from_config(cfg)
        resolver = resolver or BusinessDateResolver(default_timezone=cfg.default_timezone)
        return cls(
            client=client,
            resolver=resolver,
            tenants=TenantService(client),
            third_party=ThirdPartyApiService(client, tenant_id=cfg.third_party_tenant_id),
            par_brink=ParBrinkService(client, resolver),
            ukg_ready=UkgReadyService(client),
            tenant_names=TenantNameStore(cfg.tenant_names_file),
        )


def init_services(app: Flask, cfg, resolver: BusinessDateResolver | None = None) -> ConsoleServices:
    services = ConsoleServices.from_config(cfg, resolver)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> ConsoleServices:
    return current_app.extensions[EXTENSION_KEY]
