"""Tests for the third-party API definition pages."""
import pytest
from werkzeug.datastructures import MultiDict

from tenant_console.api.third_party import api_from_form, auth_fields_from_form
from tenant_console.core.integrations import AuthType, BearerAuth, OAuth2Auth
from tests.conftest import authenticate_with_roles, get_csrf_token

WEATHER_API = {
    "id": "api-1",
    "name": "Weather",
    "category": "Data",
    "baseUrl": "https://weather.test",
    "authType": "bearer",
    "authConfig": {"bearerToken": "tok"},
    "endpoints": [],
    "healthCheckEndpoint": "/health",
    "isActive": True,
}


@pytest.fixture()
def signed_in(client):
    authenticate_with_roles(client, ["Console.Admin"])
    return client


def _flashes(client):
    with client.session_transaction() as session:
        return [message for _, message in session.get("_flashes", [])]


def test_auth_fields_only_for_selected_variant():
    form = MultiDict({"bearerToken": "tok", "apiKeyHeader": "X-Key", "apiKeyValue": "v"})
    assert auth_fields_from_form(AuthType.BEARER, form) == {"bearerToken": "tok"}
    assert auth_fields_from_form(AuthType.NONE, form) == {}


def test_api_from_form_oauth2_with_endpoints():
    form = MultiDict([
        ("name", "Payroll"),
        ("category", "HR"),
        ("base_url", "https://payroll.test/"),
        ("auth_type", "oauth2"),
        ("oauth2ClientId", "cid"),
        ("oauth2ClientSecret", "sec"),
        ("oauth2TokenUrl", "https://idp.test/token"),
        ("endpoint_name", "List"),
        ("endpoint_path", "/employees"),
        ("endpoint_method", "get"),
        ("endpoint_name", ""),
        ("endpoint_path", ""),
        ("endpoint_method", "GET"),
        ("requestsPerMinute", "60"),
    ])
    api = api_from_form(form)
    assert api.base_url == "https://payroll.test"
    assert api.auth == OAuth2Auth("cid", "sec", "https://idp.test/token")
    assert [(e.name, e.path, e.method) for e in api.endpoints] == [("List", "/employees", "GET")]
    assert api.endpoints[0].id
    assert api.rate_limits.requests_per_minute == 60


@pytest.mark.parametrize("overrides,message", [
    ({"name": ""}, "API name is required"),
    ({"auth_type": "bearer"}, "Bearer token"),
    ({"endpoint_path": "employees"}, "must start with '/'"),
    ({"requestsPerDay": "lots"}, "whole number"),
    ({"auth_type": "custom", "customHeaders": "no-colon"}, "Invalid header line"),
])
def test_api_from_form_rejects(overrides, message):
    data = {"name": "X", "base_url": "https://x.test", "endpoint_name": "E", "endpoint_path": "/e"}
    data.update(overrides)
    with pytest.raises(ValueError, match=message):
        api_from_form(MultiDict(data))


def test_custom_headers_parsed():
    api = api_from_form(MultiDict({
        "name": "X",
        "base_url": "https://x.test",
        "auth_type": "custom",
        "customHeaders": "X-Tenant: acme\n\nX-Trace: on",
    }))
    assert api.auth.header_map() == {"X-Tenant": "acme", "X-Trace": "on"}


def test_anonymous_redirected(client):
    response = client.get("/third-party/")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/login")


def test_list_skips_malformed_records(signed_in, backend):
    broken = dict(WEATHER_API, id="api-2", name="Broken", authType="hmac")
    backend.add("GET", "/api/thirdpartyapis", {"data": [WEATHER_API, broken]})
    response = signed_in.get("/third-party/")
    assert response.status_code == 200
    assert b"Weather" in response.data
    assert b"Bearer Token" in response.data
    assert b"Broken" not in response.data


def test_new_form_renders(signed_in):
    response = signed_in.get("/third-party/new")
    assert response.status_code == 200
    assert b"client_credentials" in response.data


def test_create_api(signed_in, backend):
    backend.add("POST", "/api/thirdpartyapis", {"data": {"id": "api-9"}}, status=201)
    response = signed_in.post("/third-party/", data={
        "csrf_token": get_csrf_token(signed_in),
        "name": "Weather",
        "category": "Data",
        "base_url": "https://weather.test",
        "auth_type": "apikey",
        "apiKeyHeader": "X-Key",
        "apiKeyValue": "v",
        "bearerToken": "ignored",
    })
    assert response.status_code == 302
    body = backend.last_json()
    assert body["tenantId"] == "default-tenant"
    assert body["authType"] == "apikey"
    assert body["authConfig"] == {"apiKeyHeader": "X-Key", "apiKeyValue": "v"}
    assert body["isActive"] is True
    assert "id" not in body
    assert "API 'Weather' created successfully" in _flashes(signed_in)


def test_create_api_enhanced_endpoint(signed_in, backend):
    backend.add("POST", "/api/configurations/enhanced", {"data": {"id": "api-9"}})
    signed_in.post("/third-party/", data={
        "csrf_token": get_csrf_token(signed_in),
        "name": "Brink",
        "base_url": "https://brink.test",
        "enhanced": "1",
    })
    assert backend.last_call["path"] == "/api/configurations/enhanced"


def test_create_api_invalid_form(signed_in, backend):
    response = signed_in.post("/third-party/", data={
        "csrf_token": get_csrf_token(signed_in),
        "name": "Weather",
        "base_url": "weather.test",
    })
    assert response.status_code == 400
    assert backend.calls == []


def test_toggle_api(signed_in, backend):
    backend.add("GET", "/api/thirdpartyapis/api-1", {"data": WEATHER_API})
    backend.add("PUT", "/api/thirdpartyapis/api-1", {"data": {}})
    signed_in.post("/third-party/api-1/toggle", data={"csrf_token": get_csrf_token(signed_in)})
    body = backend.last_json()
    assert body["isActive"] is False
    assert body["updatedAt"].endswith("Z")
    assert "API deactivated successfully" in _flashes(signed_in)


def test_delete_api(signed_in, backend):
    backend.add("DELETE", "/api/thirdpartyapis/api-1", status=204)
    signed_in.post("/third-party/api-1/delete", data={"csrf_token": get_csrf_token(signed_in)})
    assert "API deleted successfully" in _flashes(signed_in)


def test_test_api_sends_auth_headers(signed_in, backend):
    backend.add("GET", "/api/thirdpartyapis/api-1", {"data": WEATHER_API})
    backend.add("POST", "/api/testParBrinkConnection/enhanced", {"data": {"status": "ok"}})
    signed_in.post("/third-party/api-1/test", data={"csrf_token": get_csrf_token(signed_in)})
    body = backend.last_json()
    assert body["testUrl"] == "https://weather.test/health"
    assert body["headers"] == {"Authorization": "Bearer tok"}
    assert "API test successful!" in _flashes(signed_in)


def test_test_api_not_found(signed_in, backend):
    backend.add("GET", "/api/thirdpartyapis/missing", {"error": "Not found"}, status=404)
    signed_in.post("/third-party/missing/test", data={"csrf_token": get_csrf_token(signed_in)})
    assert "API not found" in _flashes(signed_in)


def test_test_api_failure(signed_in, backend):
    backend.add("GET", "/api/thirdpartyapis/api-1", {"data": WEATHER_API})
    backend.add("POST", "/api/testParBrinkConnection/enhanced", {"error": "Timeout"}, status=504)
    signed_in.post("/third-party/api-1/test", data={"csrf_token": get_csrf_token(signed_in)})
    assert "API test failed: Timeout" in _flashes(signed_in)


def test_bearer_variant_type():
    api = api_from_form(MultiDict({"name": "X", "base_url": "https://x.test", "auth_type": "bearer", "bearerToken": "t"}))
    assert api.auth == BearerAuth("t")


def test_list_shows_par_brink_locations(signed_in, backend):
    brink = dict(
        WEATHER_API,
        id="api-brink",
        name="PAR Brink",
        authType="custom",
        authConfig={
            "accessToken": "brink-access",
            "locations": [
                {"id": "l1", "name": "Downtown", "locationId": "1001", "token": "t1", "isActive": True},
                {"id": "l2", "name": "Airport", "locationId": "1002", "token": "t2", "isActive": False},
            ],
        },
    )
    backend.add("GET", "/api/thirdpartyapis", {"data": [brink]})
    response = signed_in.get("/third-party/")
    assert response.status_code == 200
    assert b"PAR Brink" in response.data
    assert b"1 active of 2" in response.data
