"""Tests for the built-in MCP methods: initialize, tools/list, tools/call, completions/list."""
import pytest

from mcp_server.dispatcher import HandlerError
from mcp_server.methods import TOOLS, build_method_table, call_tool


@pytest.fixture
def methods():
    return build_method_table("poc-mcp-server", "1.0.0", "2025-03-26")


def test_initialize(methods):
    result = methods["initialize"]({})
    assert result["protocolVersion"] == "2025-03-26"
    assert result["serverInfo"] == {"name": "poc-mcp-server", "version": "1.0.0"}
    assert set(result["capabilities"]) == {"tools", "completions"}


def test_tools_list(methods):
    assert methods["tools/list"](None) == {"tools": TOOLS}
    assert TOOLS[0]["inputSchema"]["required"] == ["message"]


def test_completions_list(methods):
    assert methods["completions/list"](None) == {"completions": []}


def test_echo_tool():
    result = call_tool({"name": "echo", "arguments": {"message": "hi"}})
    assert result == {"content": [{"type": "text", "text": "Echo: hi"}]}


def test_unknown_tool():
    with pytest.raises(HandlerError, match="Unknown tool: nope"):
        call_tool({"name": "nope", "arguments": {}})


@pytest.mark.parametrize("params", [None, {}, {"name": 3}, {"name": "echo", "arguments": []}])
def test_call_tool_invalid_params(params):
    with pytest.raises(HandlerError):
        call_tool(params)


def test_echo_missing_message():
    with pytest.raises(HandlerError):
        call_tool({"name": "echo", "arguments": {}})


def test_tools_call_failure_over_http(client):
    r = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {"name": "nope"}},
    )
    assert r.status_code == 200
    assert r.json() == {
        "jsonrpc": "2.0",
        "id": 5,
        "error": {"code": -32603, "message": "Unknown tool: nope"},
    }


def test_method_table_is_read_only(methods):
    with pytest.raises(TypeError):
        methods["extra"] = lambda params: None
