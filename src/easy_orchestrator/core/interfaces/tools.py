"""
Tool Invoker Protocol

Contract for a remote tool-execution service (MCP-style server). Listing
calls return the server's raw JSON envelopes, e.g. ``{"tools": [...]}``.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolInvokerProtocol(Protocol):
    """
    Protocol for remote tool registries.

    Implementations raise ToolInvokerUnavailable when no server is
    configured and ToolCallFailed on transport, non-2xx or JSON-RPC errors.
    """

    async def list_tools(self) -> dict[str, Any]:
        """Return ``{"tools": [{"name": ..., "description": ...}, ...]}``."""
        ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a named tool and return its JSON result."""
        ...

    async def list_prompts(self) -> dict[str, Any]:
        """Return ``{"prompts": [...]}``."""
        ...

    async def list_resources(self) -> dict[str, Any]:
        """Return ``{"resources": [...]}``."""
        ...

    async def read_resource(self, name: str) -> Any:
        """Return the content of a named resource."""
        ...

    async def health_check(self) -> dict[str, Any]:
        ...
