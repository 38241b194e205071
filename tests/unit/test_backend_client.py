"""Tests for the backend HTTP client."""
import pytest
import requests

from tenant_console.core.backend import BackendClient, ErrorKind
from tests.conftest import BACKEND_URL, make_config


@pytest.fixture()
def api():
    return BackendClient(BACKEND_URL + "/", timeout=7)


def test_requires_base_url():
    with pytest.raises(ValueError):
        BackendClient("")


def test_from_config_uses_explicit_settings():
    client = BackendClient.from_config(make_config(backend_api_base_url="http://other:9000", backend_request_timeout=3.5))
    assert client.base_url == "http://other:9000"
    assert client.timeout == 3.5


def test_url_for_joins_paths(api):
    assert api.url_for("/api/v2/tenants") == f"{BACKEND_URL}/api/v2/tenants"
    assert api.url_for("api/v2/tenants") == f"{BACKEND_URL}/api/v2/tenants"


def test_get_sends_no_content_type_or_body(api, backend):
    backend.add("GET", "/api/v2/tenants", {"data": []})
    result = api.get("/api/v2/tenants", params={"id": "t-1"})

    assert result.ok
    assert result.data == []
    call = backend.last_call
    assert call["method"] == "GET"
    assert call["params"] == {"id": "t-1"}
    assert call["data"] is None
    assert "Content-Type" not in call["headers"]
    assert call["timeout"] == 7


def test_post_serializes_json_body(api, backend):
    backend.add("POST", "/api/v2/tenants", {"data": {"id": "t-1"}}, status=201)
    result = api.post("/api/v2/tenants", json={"tenantName": "Acme"})

    assert result.ok
    assert result.status_code == 201
    assert backend.last_call["headers"]["Content-Type"] == "application/json"
    assert backend.last_json() == {"tenantName": "Acme"}


def test_method_is_uppercased(api, backend):
    backend.add("PUT", "/x", {})
    assert api.request("put", "/x", json={}).ok
    assert backend.last_call["method"] == "PUT"


def test_transport_error_becomes_network_failure(api, backend):
    backend.add("GET", "/api/v2/tenants", exc=requests.ConnectionError("connection refused"))
    result = api.get("/api/v2/tenants")

    assert not result.ok
    assert result.kind is ErrorKind.NETWORK_ERROR
    assert result.error == "connection refused"


def test_timeout_becomes_network_failure(api, backend):
    backend.add("GET", "/slow", exc=requests.Timeout())
    result = api.get("/slow")
    assert result.kind is ErrorKind.NETWORK_ERROR
    assert result.error == "Network error"


def test_http_error_is_normalized(api, backend):
    backend.add("DELETE", "/api/v2/tenants", {"error": "Tenant not found"}, status=404)
    result = api.delete("/api/v2/tenants", params={"id": "missing"})
    assert result.kind is ErrorKind.HTTP_ERROR
    assert result.error == "Tenant not found"
    assert result.status_code == 404


def test_invalid_json_is_normalized(api, backend):
    backend.add("GET", "/html", text="<html>Bad Gateway</html>", status=502)
    result = api.get("/html")
    assert result.kind is ErrorKind.INVALID_PAYLOAD
    assert result.details == ["<html>Bad Gateway</html>"]


def test_default_headers_sent(backend):
    client = BackendClient(BACKEND_URL, default_headers={"X-Console": "1"})
    backend.add("GET", "/ping", {})
    client.get("/ping")
    assert backend.last_call["headers"]["X-Console"] == "1"
