"""
End-to-end: register -> authorize -> token -> MCP call with the Bearer token.
Also server info, CORS preflight, health and audit records.
"""
import logging
from urllib.parse import parse_qs, urlsplit

from mcp_server.audit import EVENT_CLIENT_REGISTERED, EVENT_CODE_ISSUED, EVENT_TOKEN_ISSUED


def _run_flow(client):
    reg = client.post("/oauth/register", json={"redirect_uris": ["http://cb"]})
    assert reg.status_code == 200
    creds = reg.json()
    assert creds["redirect_uris"] == ["http://cb"]

    auth = client.get(
        "/oauth/authorize",
        params={
            "client_id": creds["client_id"],
            "redirect_uri": "http://cb",
            "response_type": "code",
            "state": "xyz",
        },
        follow_redirects=False,
    )
    assert auth.status_code == 302
    location = urlsplit(auth.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == "http://cb"
    query = parse_qs(location.query)
    assert query["state"] == ["xyz"]

    tok = client.post(
        "/oauth/token",
        data={
            "grant_type": "authorization_code",
            "code": query["code"][0],
            "client_id": creds["client_id"],
            "client_secret": creds["client_secret"],
        },
    )
    assert tok.status_code == 200
    token = tok.json()
    assert token["token_type"] == "Bearer"
    assert token["expires_in"] == 3600
    return creds, token["access_token"]


def test_end_to_end_flow(client):
    _, access_token = _run_flow(client)
    r = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers={"Authorization": f"Bearer {access_token}"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["jsonrpc"] == "2.0"
    assert data["id"] == 1
    assert [t["name"] for t in data["result"]["tools"]] == ["echo"]

    r = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "echo", "arguments": {"message": "hello"}}},
        headers={"Authorization": f"Bearer {access_token}"},
    )
    assert r.json()["result"]["content"][0]["text"] == "Echo: hello"


def test_audit_records_flow_without_secrets(client, caplog):
    caplog.set_level(logging.INFO, logger="mcp_server.audit")
    creds, access_token = _run_flow(client)
    events = [getattr(r, "audit_event", None) for r in caplog.records]
    assert EVENT_CLIENT_REGISTERED in events
    assert EVENT_CODE_ISSUED in events
    assert EVENT_TOKEN_ISSUED in events
    text = caplog.text
    assert creds["client_secret"] not in text
    assert access_token not in text


def test_audit_records_denied_token(client, registered, caplog):
    caplog.set_level(logging.INFO, logger="mcp_server.audit")
    client.post(
        "/oauth/token",
        data={
            "grant_type": "authorization_code",
            "code": "bogus",
            "client_id": registered["client_id"],
            "client_secret": registered["client_secret"],
        },
    )
    denied = [r for r in caplog.records if getattr(r, "audit_event", None) == "token_denied"]
    assert len(denied) == 1
    assert denied[0].audit_outcome == "fail"
    assert denied[0].audit_client_id == registered["client_id"]


def test_mcp_info(client):
    for path in ("/mcp", "/"):
        r = client.get(path)
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "poc-mcp-server"
        assert data["protocolVersion"] == "2025-03-26"
        assert data["transport"] == "streamable-http"


def test_options_preflight(client):
    r = client.options("/oauth/token")
    assert r.status_code == 204
    assert r.headers["access-control-allow-origin"] == "*"
    assert "POST" in r.headers["access-control-allow-methods"]
    assert "Authorization" in r.headers["access-control-allow-headers"]


def test_browser_preflight_is_permissive(client):
    r = client.options(
        "/mcp",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["service"] == "mcp_server"


def test_unknown_path_returns_banner(client):
    for method in ("GET", "POST"):
        r = client.request(method, "/no/such/path")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/plain")
        assert r.text == "MCP Server - Protocol version 2025-03-26"


def test_banner_does_not_shadow_routes(client):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get("/.well-known/oauth-authorization-server").status_code == 200
