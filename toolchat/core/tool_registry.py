# Discovers the tools offered by the configured MCP servers and routes calls to them.
# Date: 2025-10-04
# Version: 0.2.0

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from toolchat.models.tool_models import (
    ToolCallOutcome,
    ToolCallSuccess,
    ToolErrorKind,
    ToolFailure,
    ToolInfo,
    ToolListOutcome,
    ToolListSuccess,
)
from toolchat.services.mcp_client import McpHttpClient
from toolchat.utils.logger import console


class ToolService(ABC):
    """
    Interface of the tool-execution collaborator. Both methods report
    failures as ToolFailure values; they are not expected to raise.
    """

    @abstractmethod
    async def get_available_tools(self) -> ToolListOutcome:
        """Returns the catalogue of tools the model may call."""
        pass

    @abstractmethod
    async def call_tool(self, tool_name: str, arguments: str) -> ToolCallOutcome:
        """Executes `tool_name` with `arguments`, a serialized JSON object."""
        pass

    async def close(self):
        return None


class McpToolService(ToolService):
    """
    Aggregates several MCP servers behind one ToolService.

    Tools are collected from every reachable server; a server that fails
    does not hide the tools of the others. A call is routed to the servers
    that list the tool, in configuration order, and the first success wins.
    """

    def __init__(self, clients: Sequence[McpHttpClient]):
        self.clients: List[McpHttpClient] = list(clients)
        self._tool_owners: Dict[str, List[McpHttpClient]] = {}

    async def get_available_tools(self) -> ToolListOutcome:
        if not self.clients:
            return ToolFailure(kind=ToolErrorKind.NOT_CONFIGURED, message="No MCP servers configured")

        all_tools: List[ToolInfo] = []
        errors: List[ToolFailure] = []
        owners: Dict[str, List[McpHttpClient]] = {}

        for client in self.clients:
            result = await client.list_tools()
            if isinstance(result, ToolFailure):
                errors.append(result)
                continue
            for tool in result.tools:
                all_tools.append(tool)
                owners.setdefault(tool.name, []).append(client)

        self._tool_owners = owners
        if all_tools or not errors:
            console.success(f"Tool discovery complete. Found {len(all_tools)} tools: {[t.name for t in all_tools]}")
            return ToolListSuccess(tools=all_tools)
        return errors[0]

    async def call_tool(self, tool_name: str, arguments: str) -> ToolCallOutcome:
        if not self.clients:
            return ToolFailure(kind=ToolErrorKind.NOT_CONFIGURED, message="No MCP servers configured")

        if tool_name not in self._tool_owners:
            # Catalogue may be stale or not fetched yet
            listing = await self.get_available_tools()
            if isinstance(listing, ToolFailure) and listing.kind != ToolErrorKind.NOT_CONFIGURED:
                return listing

        candidates = self._tool_owners.get(tool_name, [])
        if not candidates:
            console.error(f"Attempted to execute unknown tool: {tool_name}")
            return ToolFailure(kind=ToolErrorKind.SERVER_ERROR, message=f"Tool '{tool_name}' not found in any MCP server")

        errors: List[ToolFailure] = []
        for client in candidates:
            result = await client.call_tool(tool_name, arguments)
            if isinstance(result, ToolCallSuccess):
                return result
            errors.append(result)
        return errors[0]

    async def close(self):
        for client in self.clients:
            await client.close()
