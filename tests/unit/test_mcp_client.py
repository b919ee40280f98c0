"""
Unit tests for the MCP tool invoker using httpx.MockTransport.
"""

import json

import httpx
import pytest

from easy_orchestrator.core.domain.errors import ToolCallFailed, ToolInvokerUnavailable
from easy_orchestrator.infrastructure.tools.mcp_client import MCPToolInvoker


def make_invoker(handler):
    return MCPToolInvoker("http://mcp.test/", transport=httpx.MockTransport(handler))


def test_requires_server_url():
    with pytest.raises(ToolInvokerUnavailable):
        MCPToolInvoker(None)


@pytest.mark.asyncio
async def test_list_tools_sends_json_rpc():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"tools": [{"name": "a"}]}})

    result = await make_invoker(handler).list_tools()

    assert result == {"tools": [{"name": "a"}]}
    assert seen["url"] == "http://mcp.test/mcp"
    assert seen["body"] == {"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}}


@pytest.mark.asyncio
async def test_call_tool_returns_result():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["method"] == "tools/call"
        assert body["params"] == {"name": "loader", "arguments": {"task": "x"}}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 2, "result": {"rows": 10}})

    assert await make_invoker(handler).call_tool("loader", {"task": "x"}) == {"rows": 10}


@pytest.mark.asyncio
async def test_json_rpc_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 2, "error": {"message": "unknown tool"}})

    with pytest.raises(ToolCallFailed, match="MCP error: unknown tool"):
        await make_invoker(handler).call_tool("nope", {})


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[1, 2], None, "text"])
async def test_non_object_body_raises_tool_call_failed(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(ToolCallFailed, match="non-object body"):
        await make_invoker(handler).list_tools()


@pytest.mark.asyncio
async def test_string_json_rpc_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 2, "error": "boom"})

    with pytest.raises(ToolCallFailed, match="MCP error: boom"):
        await make_invoker(handler).call_tool("x", {})


@pytest.mark.asyncio
async def test_http_error_raises_with_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(ToolCallFailed) as exc_info:
        await make_invoker(handler).list_tools()
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ToolCallFailed, match="refused"):
        await make_invoker(handler).list_tools()


@pytest.mark.asyncio
async def test_prompts_resources_and_health():
    routes = {
        "/prompts/list": {"prompts": [{"name": "general"}]},
        "/resources/list": {"resources": [{"name": "sales.csv"}]},
        "/resources/sales.csv": {"content": "a,b"},
        "/health": {"status": "ok"},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        return httpx.Response(200, json=routes[request.url.path])

    invoker = make_invoker(handler)

    assert (await invoker.list_prompts())["prompts"][0]["name"] == "general"
    assert (await invoker.list_resources())["resources"][0]["name"] == "sales.csv"
    assert await invoker.read_resource("sales.csv") == {"content": "a,b"}
    assert await invoker.health_check() == {"status": "ok"}
