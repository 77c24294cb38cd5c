"""
Built-in MCP methods and the tool table exposed through the dispatcher.
"""
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from mcp_server.dispatcher import HandlerError, MethodHandler

ECHO_TOOL = {
    "name": "echo",
    "description": "Echo back the provided message",
    "inputSchema": {
        "type": "object",
        "properties": {
            "message": {
                "type": "string",
                "description": "The message to echo back",
            },
        },
        "required": ["message"],
    },
    "annotations": {
        "readOnly": True,
        "destructive": False,
    },
}

TOOLS = [ECHO_TOOL]


def _echo(arguments: dict) -> dict:
    if "message" not in arguments:
        raise HandlerError("Missing required argument: message")
    return {"content": [{"type": "text", "text": f"Echo: {arguments['message']}"}]}


TOOL_HANDLERS = {"echo": _echo}


def call_tool(params: Any) -> dict:
    """tools/call: params = {"name": ..., "arguments": {...}}."""
    if not isinstance(params, dict) or not isinstance(params.get("name"), str):
        raise HandlerError("Invalid params: tool name is required")
    name = params["name"]
    tool = TOOL_HANDLERS.get(name)
    if tool is None:
        raise HandlerError(f"Unknown tool: {name}")
    arguments = params.get("arguments") or {}
    if not isinstance(arguments, dict):
        raise HandlerError("Invalid params: arguments must be an object")
    return tool(arguments)


def build_method_table(
    server_name: str,
    server_version: str,
    protocol_version: str,
) -> Mapping[str, MethodHandler]:
    """Method name -> handler(params). Read-only."""
    server_info = {"name": server_name, "version": server_version}

    def initialize(params: Any) -> dict:
        return {
            "protocolVersion": protocol_version,
            "capabilities": {"tools": {}, "completions": {}},
            "serverInfo": server_info,
        }

    def list_tools(params: Any) -> dict:
        return {"tools": TOOLS}

    def list_completions(params: Any) -> dict:
        return {"completions": []}

    return MappingProxyType(
        {
            "initialize": initialize,
            "tools/list": list_tools,
            "tools/call": call_tool,
            "completions/list": list_completions,
        }
    )
