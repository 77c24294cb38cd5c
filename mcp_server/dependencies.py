"""
FastAPI dependencies: shared state created by create_app() and kept on app.state.
"""
from fastapi import Request

from mcp_server.dispatcher import ProtocolDispatcher
from mcp_server.oauth import OAuthFlowEngine
from mcp_server.stores import CredentialStores


def get_stores(request: Request) -> CredentialStores:
    return request.app.state.stores


def get_oauth(request: Request) -> OAuthFlowEngine:
    return request.app.state.oauth


def get_dispatcher(request: Request) -> ProtocolDispatcher:
    return request.app.state.dispatcher


def get_require_auth(request: Request) -> bool:
    return request.app.state.require_auth
