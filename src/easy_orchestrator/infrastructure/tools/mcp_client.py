"""
MCP Tool Invoker

ToolInvoker implementation for an MCP-style HTTP server:

- ``POST {server_url}/mcp`` with JSON-RPC 2.0 ``tools/list`` and ``tools/call``
- ``GET {server_url}/prompts/list`` and ``/resources/list``
- ``GET {server_url}/resources/{name}`` to read a resource
- ``GET {server_url}/health``

Transport errors, non-2xx responses and JSON-RPC ``error`` members are all
raised as ToolCallFailed.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from easy_orchestrator.core.domain.errors import ToolCallFailed, ToolInvokerUnavailable

LIST_TOOLS_REQUEST_ID = 1
CALL_TOOL_REQUEST_ID = 2


class MCPToolInvoker:
    """
    Async httpx client for an MCP tool server.

    Args:
        server_url: Base URL of the server (e.g. ``http://localhost:3001``)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)

    Raises:
        ToolInvokerUnavailable: If no server URL is given
    """

    def __init__(
        self,
        server_url: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not server_url:
            raise ToolInvokerUnavailable("MCP server URL is not set.")

        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.logger = structlog.get_logger().bind(component="mcp_client", server_url=self.server_url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.server_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def _rpc(self, method: str, params: Dict[str, Any], request_id: int) -> Any:
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        try:
            async with self._client() as client:
                response = await client.post("/mcp", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ToolCallFailed(
                f"MCP request {method} failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ToolCallFailed(f"MCP request {method} failed: {e}") from e

        if not isinstance(data, dict):
            raise ToolCallFailed(f"MCP request {method} returned a non-object body: {type(data).__name__}")
        error = data.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ToolCallFailed(f"MCP error: {message}")
        return data.get("result")

    async def _get(self, path: str, what: str) -> Any:
        try:
            async with self._client() as client:
                response = await client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ToolCallFailed(
                f"Failed to fetch MCP {what}: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ToolCallFailed(f"Failed to fetch MCP {what}: {e}") from e

    async def list_tools(self) -> Dict[str, Any]:
        try:
            result = await self._rpc("tools/list", {}, LIST_TOOLS_REQUEST_ID) or {}
        except ToolCallFailed as e:
            self.logger.error("mcp.list_tools_failed", error=str(e))
            raise
        self.logger.info("mcp.tools_listed", count=len(result.get("tools") or []))
        return result

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        self.logger.info("mcp.tool_call_started", tool=name)
        try:
            result = await self._rpc(
                "tools/call", {"name": name, "arguments": arguments}, CALL_TOOL_REQUEST_ID
            )
        except ToolCallFailed as e:
            self.logger.error("mcp.tool_call_failed", tool=name, error=str(e))
            raise
        self.logger.info("mcp.tool_call_completed", tool=name)
        return result

    async def list_prompts(self) -> Dict[str, Any]:
        result = await self._get("/prompts/list", "prompts") or {}
        self.logger.info("mcp.prompts_listed", count=len(result.get("prompts") or []))
        return result

    async def list_resources(self) -> Dict[str, Any]:
        result = await self._get("/resources/list", "resources") or {}
        self.logger.info("mcp.resources_listed", count=len(result.get("resources") or []))
        return result

    async def read_resource(self, name: str) -> Any:
        return await self._get(f"/resources/{name}", f"resource {name}")

    async def health_check(self) -> Dict[str, Any]:
        result = await self._get("/health", "health")
        self.logger.info("mcp.healthy")
        return result
