"""
Pytest configuration for mcp_server. Each test gets a fresh app with its own in-memory stores.
"""
import os

import pytest
from fastapi.testclient import TestClient

# Keep bearer auth optional unless a test builds its own app
os.environ.pop("MCP_REQUIRE_AUTH", None)

from mcp_server.main import create_app
from mcp_server.stores import CredentialStores

ISSUER = "http://testserver"
REDIRECT_URI = "http://127.0.0.1:8000/callback"


@pytest.fixture
def stores():
    return CredentialStores()


@pytest.fixture
def app(stores):
    return create_app(stores=stores, issuer=ISSUER, require_auth=False)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def registered(client):
    """A freshly registered client: {client_id, client_secret, redirect_uris}."""
    r = client.post("/oauth/register", json={"redirect_uris": [REDIRECT_URI]})
    assert r.status_code == 200
    return r.json()
