"""
MCP server with an OAuth 2.0 authorization-code flow.
OAuth: metadata discovery, dynamic registration, /oauth/authorize, /oauth/token.
MCP: streamable HTTP at /mcp (and /), optional Bearer auth.
Credentials are kept in memory only.
"""
import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from mcp_server import config
from mcp_server.authorize import router as authorize_router
from mcp_server.dispatcher import MethodHandler, ProtocolDispatcher
from mcp_server.mcp_endpoint import router as mcp_router
from mcp_server.methods import build_method_table
from mcp_server.oauth import OAuthError, OAuthFlowEngine
from mcp_server.register import router as register_router
from mcp_server.stores import CredentialStores
from mcp_server.token_endpoint import router as token_router
from mcp_server.well_known import router as well_known_router

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


async def oauth_error_handler(request: Request, exc: OAuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Basic"} if exc.status_code == 401 else None
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


def create_app(
    *,
    stores: CredentialStores | None = None,
    issuer: str = config.ISSUER,
    require_auth: bool = config.REQUIRE_AUTH,
    methods: Mapping[str, MethodHandler] | None = None,
    code_ttl_seconds: int = config.CODE_TTL_SECONDS,
    access_token_expires: int = config.ACCESS_TOKEN_EXPIRES,
) -> FastAPI:
    """Build the app. Each app gets its own stores unless they are passed in."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("MCP Server running on %s", issuer)
        logger.info("MCP endpoint: %s/mcp", issuer)
        logger.info("Protocol version: %s", config.PROTOCOL_VERSION)
        logger.info("Transport: Streamable HTTP (bearer auth %s)", "required" if require_auth else "optional")
        yield

    app = FastAPI(title="MCP Server", version=config.SERVER_VERSION, lifespan=lifespan)

    app.state.stores = stores if stores is not None else CredentialStores()
    app.state.oauth = OAuthFlowEngine(
        app.state.stores,
        issuer=issuer,
        code_ttl_seconds=code_ttl_seconds,
        access_token_expires=access_token_expires,
    )
    app.state.server_info = {"name": config.SERVER_NAME, "version": config.SERVER_VERSION}
    if methods is None:
        methods = build_method_table(config.SERVER_NAME, config.SERVER_VERSION, config.PROTOCOL_VERSION)
    app.state.dispatcher = ProtocolDispatcher(methods)
    app.state.require_auth = require_auth

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(OAuthError, oauth_error_handler)

    @app.options("/{path:path}", include_in_schema=False)
    def preflight(path: str):
        """CORS preflight for any path."""
        return Response(status_code=204, headers=CORS_HEADERS)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "mcp_server"}

    app.include_router(well_known_router, tags=["well-known"])
    app.include_router(register_router, tags=["register"])
    app.include_router(authorize_router, tags=["authorize"])
    app.include_router(token_router, tags=["token"])
    app.include_router(mcp_router, tags=["mcp"])

    # Registered last so every explicit route matches first
    @app.api_route("/{path:path}", methods=["GET", "POST"], include_in_schema=False)
    def banner(path: str):
        """Plain-text banner for any other path."""
        return PlainTextResponse(f"MCP Server - Protocol version {config.PROTOCOL_VERSION}")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "mcp_server.main:app",
        host="0.0.0.0",
        port=config.PORT,
    )
