"""
MCP server configuration. All values come from the environment; no secrets in this file.
"""
import os

# Public base URL of this server (used as OAuth issuer and to build endpoint URLs)
HOST = os.environ.get("MCP_HOST", "http://localhost").rstrip("/")
PORT = int(os.environ.get("MCP_PORT", "3000"))
ISSUER = os.environ.get("MCP_ISSUER", f"{HOST}:{PORT}").rstrip("/")

# Authorization code lifetime (seconds): 10 minutes
CODE_TTL_SECONDS = 600

# Access token lifetime (seconds): 1 hour. No refresh tokens are issued.
ACCESS_TOKEN_EXPIRES = 3600

# When true, /mcp rejects requests without an Authorization: Bearer header.
# Default keeps bearer auth optional: only a presented token is checked.
REQUIRE_AUTH = os.environ.get("MCP_REQUIRE_AUTH", "").strip().lower() in ("1", "true", "yes", "on")

# MCP protocol and server identity
PROTOCOL_VERSION = "2025-03-26"
SERVER_NAME = os.environ.get("MCP_SERVER_NAME", "poc-mcp-server")
SERVER_VERSION = os.environ.get("MCP_SERVER_VERSION", "1.0.0")

LOG_LEVEL = os.environ.get("MCP_LOG_LEVEL", "INFO").upper()
