"""Business-operations queries: PAR Brink point-of-sale and UKG Ready workforce data.

Every query that targets "today" resolves its date through
BusinessDateResolver, so the early-morning rollover rule lives in one place.
"""
from __future__ import annotations
from typing import Any, Optional

from tenant_console.core.business_date import BusinessDateResolver, load_timezone

from .client import BackendClient
from .responses import ApiResponse

PAR_BRINK_PATH = "/api/par-brink"
UKG_READY_PATH = "/api/ukg-ready"
UKG_MODULES = {"timeentries", "employees"}


class ParBrinkService:
    """PAR Brink location queries (employees, shifts, sales, tips, tills)."""

    def __init__(self, client: BackendClient, resolver: Optional[BusinessDateResolver] = None):
        self.client = client
        self.resolver = resolver or BusinessDateResolver()

    def _post(self, endpoint: str, payload: dict) -> ApiResponse:
        return self.client.post(f"{PAR_BRINK_PATH}/{endpoint}", json=payload)

    def employees(self, location: dict[str, Any]) -> ApiResponse:
        return self._post("employees", location)

    def labor_shifts(self, access_token: str, location_token: str, business_date: str) -> ApiResponse:
        return self._post("clocked-in", {
            "accessToken": access_token,
            "locationToken": location_token,
            "businessDate": business_date,
        })

    def sales(self, location: dict[str, Any]) -> ApiResponse:
        return self._post("sales", location)

    def configurations(self) -> ApiResponse:
        return self.client.get(f"{PAR_BRINK_PATH}/configurations")

    def dashboard(
        self,
        location_token: str,
        access_token: str,
        business_date: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> ApiResponse:
        """Dashboard for one location; timezone defaults to the resolver's default.

        Raises:
            InvalidTimezone: If timezone is not a known IANA zone
        """
        tz_name = timezone if timezone is not None else self.resolver.default_timezone
        load_timezone(tz_name)
        return self._post("dashboard", {
            "locationToken": location_token,
            "accessToken": access_token,
            "businessDate": self.resolver.resolve(business_date, tz_name),
            "timezone": tz_name,
        })

    def clocked_in(self, location_token: str, access_token: str, business_date: Optional[str] = None) -> ApiResponse:
        return self._post("clocked-in", {
            "locationToken": location_token,
            "accessToken": access_token,
            "businessDate": self.resolver.resolve(business_date),
        })

    def tips(self, location_token: str, access_token: str, start_date: Optional[str] = None) -> ApiResponse:
        return self._post("tips", {
            "locationToken": location_token,
            "accessToken": access_token,
            "startDate": self.resolver.resolve(start_date),
        })

    def tills(self, location_token: str, access_token: str, business_date: Optional[str] = None) -> ApiResponse:
        return self._post("tills", {
            "locationToken": location_token,
            "accessToken": access_token,
            "businessDate": self.resolver.resolve(business_date),
        })


class UkgReadyService:
    """UKG Ready time entry and employee actions proxied by the backend."""

    def __init__(self, client: BackendClient):
        self.client = client

    def call(self, tenant_id: str, module: str, action: str, data: Optional[dict] = None) -> ApiResponse:
        """Dispatch a module action; POST when data is given, else GET."""
        if module not in UKG_MODULES:
            raise ValueError(f"Unsupported UKG Ready module: {module}")
        params = {"tenant": tenant_id, "module": module, "action": action}
        if data is not None:
            return self.client.post(UKG_READY_PATH, json=data, params=params)
        return self.client.get(UKG_READY_PATH, params=params)

    # Time entries
    def list_time_entries(self, tenant_id: str) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "list")

    def get_time_entry(self, tenant_id: str, time_entry_id: str) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "get", {"timeEntryId": time_entry_id})

    def create_time_entry(self, tenant_id: str, entry: dict) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "create", entry)

    def update_time_entry(self, tenant_id: str, time_entry_id: str, entry: dict) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "update", {"timeEntryId": time_entry_id, **entry})

    def delete_time_entry(self, tenant_id: str, time_entry_id: str) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "delete", {"timeEntryId": time_entry_id})

    def approve_time_entry(self, tenant_id: str, time_entry_id: str) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "approve", {"timeEntryId": time_entry_id})

    def reject_time_entry(self, tenant_id: str, time_entry_id: str, reason: Optional[str] = None) -> ApiResponse:
        payload = {"timeEntryId": time_entry_id}
        if reason:
            payload["reason"] = reason
        return self.call(tenant_id, "timeentries", "reject", payload)

    def pay_period_time_entries(self, tenant_id: str, pay_period_id: str) -> ApiResponse:
        return self.call(tenant_id, "timeentries", "payperiod", {"payPeriodId": pay_period_id})

    # Employees
    def list_employees(self, tenant_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "list")

    def get_employee(self, tenant_id: str, employee_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "get", {"employeeId": employee_id})

    def create_employee(self, tenant_id: str, employee: dict) -> ApiResponse:
        return self.call(tenant_id, "employees", "create", employee)

    def update_employee(self, tenant_id: str, employee_id: str, employee: dict) -> ApiResponse:
        return self.call(tenant_id, "employees", "update", {"employeeId": employee_id, **employee})

    def deactivate_employee(self, tenant_id: str, employee_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "deactivate", {"employeeId": employee_id})

    def terminate_employee(self, tenant_id: str, employee_id: str, termination: Optional[dict] = None) -> ApiResponse:
        return self.call(tenant_id, "employees", "terminate", {"employeeId": employee_id, **(termination or {})})

    def departments(self, tenant_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "departments")

    def positions(self, tenant_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "positions")

    def managers(self, tenant_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "managers")

    def employee_schedule(self, tenant_id: str, employee_id: str) -> ApiResponse:
        return self.call(tenant_id, "employees", "schedule", {"employeeId": employee_id})
