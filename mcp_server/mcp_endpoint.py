"""
MCP endpoint over streamable HTTP, mounted at /mcp and /.
GET returns server info; POST carries JSON-RPC messages (see transport.py).
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from mcp_server.bearer import require_bearer
from mcp_server.config import PROTOCOL_VERSION
from mcp_server.dependencies import get_dispatcher
from mcp_server.dispatcher import ProtocolDispatcher
from mcp_server.transport import handle_protocol_request

router = APIRouter(dependencies=[Depends(require_bearer)])


@router.get("/mcp")
@router.get("/")
def mcp_info(request: Request):
    """Server identity and transport."""
    server_info = request.app.state.server_info
    return {
        "name": server_info["name"],
        "version": server_info["version"],
        "protocolVersion": PROTOCOL_VERSION,
        "transport": "streamable-http",
    }


@router.post("/mcp")
@router.post("/")
async def mcp_post(
    request: Request,
    dispatcher: Annotated[ProtocolDispatcher, Depends(get_dispatcher)],
):
    """JSON-RPC over HTTP. Protocol errors are reported in the body with status 200."""
    return await handle_protocol_request(request, dispatcher)
