"""Tests for the OIDC login, callback and logout routes."""
from urllib.parse import parse_qs, urlparse

from tenant_console.api import auth
from tenant_console.api.auth import _build_code_challenge, _generate_code_verifier
from tests.conftest import ISSUER, authenticate_with_roles


def test_code_verifier_and_challenge():
    verifier = _generate_code_verifier()
    assert len(verifier) == 64
    # RFC 7636 appendix B
    assert _build_code_challenge("dBjftJeZ4CVP-mJ0kqyFtbW9Ao5Eb5XTqm0wR6Ho5cY") == \
        "E9Melhoa2OwvXDWZtmt7S16kbSZ1bfTrmfL3VvZH7d4"


def test_login_redirects_with_pkce(client):
    response = client.get("/login")
    assert response.status_code == 302
    location = urlparse(response.headers["Location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == f"{ISSUER}/oauth2/authorize"
    query = parse_qs(location.query)
    assert query["code_challenge_method"] == ["S256"]
    assert query["client_id"] == ["tenant-console"]
    assert query["redirect_uri"] == ["https://console.test/callback"]
    with client.session_transaction() as session:
        verifier = session["pkce_code_verifier"]
    assert query["code_challenge"] == [_build_code_challenge(verifier)]


def test_callback_without_verifier_restarts_login(client):
    response = client.get("/callback?code=abc&state=xyz")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/login")


def test_callback_state_mismatch_returns_home(client):
    with client.session_transaction() as session:
        session["pkce_code_verifier"] = "v" * 64
    response = client.get("/callback?code=abc&state=forged")
    assert response.status_code == 302
    assert urlparse(response.headers["Location"]).path == "/"
    with client.session_transaction() as session:
        assert "token" not in session


def test_callback_stores_token_and_claims(client, monkeypatch):
    oidc_client = auth.get_oidc_client()
    seen = {}

    def _fake_authorize_access_token(**kwargs):
        seen.update(kwargs)
        return {
            "access_token": "opaque",
            "id_token": "id-token",
            "userinfo": {"preferred_username": "carol", "roles": ["Console.Admin"]},
        }

    class _UserinfoResponse:
        def json(self):
            return {"email": "carol@example.test"}

    monkeypatch.setattr(oidc_client, "authorize_access_token", _fake_authorize_access_token)
    monkeypatch.setattr(oidc_client, "get", lambda url, token=None: _UserinfoResponse())

    with client.session_transaction() as session:
        session["pkce_code_verifier"] = "v" * 64
    response = client.get("/callback?code=abc&state=s")

    assert response.status_code == 302
    assert urlparse(response.headers["Location"]).path == "/tenants/"
    assert seen == {"code_verifier": "v" * 64}
    with client.session_transaction() as session:
        assert session["token"]["access_token"] == "opaque"
        assert session["id_claims"]["roles"] == ["Console.Admin"]
        assert session["userinfo"] == {"email": "carol@example.test"}
        assert "pkce_code_verifier" not in session


def test_logout_uses_end_session_endpoint_with_hint(client):
    authenticate_with_roles(client, ["Console.Admin"])
    response = client.get("/logout")
    assert response.status_code == 302
    location = urlparse(response.headers["Location"])
    assert location.path == "/tenant-id/v2.0/oauth2/logout"
    query = parse_qs(location.query)
    assert query["id_token_hint"] == ["stub-id-token"]
    assert query["post_logout_redirect_uri"] == ["https://console.test/"]
    with client.session_transaction() as session:
        assert "token" not in session


def test_logout_without_token_sends_client_id(client):
    response = client.get("/logout")
    query = parse_qs(urlparse(response.headers["Location"]).query)
    assert query["client_id"] == ["tenant-console"]
    assert "id_token_hint" not in query


def test_logout_post_requires_csrf(client):
    authenticate_with_roles(client, ["Console.Admin"])
    assert client.post("/logout").status_code == 400


def test_entra_logout_fallback(app, monkeypatch):
    oidc_client = auth.get_oidc_client()
    monkeypatch.setattr(oidc_client, "load_server_metadata", lambda: {})
    cfg = app.config["APP_CONFIG"]
    with app.app_context():
        assert auth._end_session_endpoint(cfg) == "https://login.example.test/tenant-id/oauth2/v2.0/logout"


def test_index_shows_username(client):
    assert b"Sign in to manage" in client.get("/").data
    authenticate_with_roles(client, ["Console.Admin"], username="dave")
    assert b"dave" in client.get("/").data
