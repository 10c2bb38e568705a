# The module implements an MCP (Model Context Protocol) client over streamable HTTP.
# Date: 2025-10-04
# Version: 0.2.0

import itertools
import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from toolchat.models.tool_models import (
    ToolCallOutcome,
    ToolCallSuccess,
    ToolErrorKind,
    ToolFailure,
    ToolInfo,
    ToolListOutcome,
    ToolListSuccess,
)
from toolchat.utils.logger import console

PROTOCOL_VERSION = "2025-03-26"
CLIENT_INFO = {"name": "toolchat", "version": "0.2.0"}
SESSION_HEADER = "mcp-session-id"


class McpCallError(Exception):
    """Raised inside the client; converted to a ToolFailure at the public boundary."""

    def __init__(self, kind: ToolErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def to_failure(self) -> ToolFailure:
        return ToolFailure(kind=self.kind, message=str(self))


def parse_event_stream(body: str) -> List[Dict[str, Any]]:
    """
    Decodes a `text/event-stream` body into its JSON payloads. Multi-line
    `data:` fields of one event are joined; non-JSON events are skipped.
    """
    payloads = []
    data_lines: List[str] = []
    for line in body.splitlines() + [""]:
        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
        elif not line.strip() and data_lines:
            try:
                payloads.append(json.loads("\n".join(data_lines)))
            except (ValueError, RecursionError):
                console.debug("Skipping non-JSON server-sent event.")
            data_lines = []
    return payloads


class McpHttpClient:
    """
    Client for a single MCP server reached over streamable HTTP.

    The session is initialized lazily on first use. Every public method
    returns a result value instead of raising, so the conversation loop can
    react to the failure kind.
    """

    def __init__(self, server_url: str, timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.server_url = server_url
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)
        self._session_id: Optional[str] = None
        self._initialized = False

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json, text/event-stream",
            "Content-Type": "application/json",
        }
        if self._session_id:
            headers["Mcp-Session-Id"] = self._session_id
        return headers

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        try:
            response = await self._http.post(self.server_url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise McpCallError(ToolErrorKind.TIMEOUT, f"Timed out waiting for MCP server {self.server_url}: {e}") from e
        except httpx.RequestError as e:
            raise McpCallError(ToolErrorKind.CONNECTION_FAILED, f"Failed to connect to MCP server {self.server_url}: {e}") from e

        if response.is_error:
            raise McpCallError(
                ToolErrorKind.SERVER_ERROR,
                f"MCP server {self.server_url} returned HTTP {response.status_code}: {response.text[:200]}",
            )
        session_id = response.headers.get(SESSION_HEADER)
        if session_id:
            self._session_id = session_id
        return response

    async def _rpc(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        request_id = next(self._ids)
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            payload["params"] = params
        response = await self._post(payload)

        message = self._find_response(response, request_id)
        if "error" in message:
            error = message["error"]
            detail = error.get("message", error) if isinstance(error, dict) else error
            raise McpCallError(ToolErrorKind.SERVER_ERROR, str(detail))
        result = message.get("result")
        if not isinstance(result, dict):
            raise McpCallError(ToolErrorKind.INVALID_RESPONSE, f"Missing result in response to '{method}'")
        return result

    def _find_response(self, response: httpx.Response, request_id: int) -> Dict[str, Any]:
        content_type = response.headers.get("content-type", "")
        try:
            if content_type.startswith("text/event-stream"):
                messages = parse_event_stream(response.text)
            else:
                body = response.json()
                messages = body if isinstance(body, list) else [body]
        except (ValueError, RecursionError) as e:
            raise McpCallError(ToolErrorKind.INVALID_RESPONSE, f"Unparseable MCP response: {e}") from e

        for message in messages:
            if isinstance(message, dict) and message.get("id") == request_id:
                return message
        raise McpCallError(ToolErrorKind.INVALID_RESPONSE, f"No JSON-RPC response with id {request_id}")

    async def _ensure_initialized(self):
        if self._initialized:
            return
        await self._rpc("initialize", {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": CLIENT_INFO,
        })
        await self._post({"jsonrpc": "2.0", "method": "notifications/initialized"})
        self._initialized = True
        console.info(f"MCP session initialized with {self.server_url}.")

    async def list_tools(self) -> ToolListOutcome:
        console.debug(f"Listing tools from MCP server: {self.server_url}")
        try:
            await self._ensure_initialized()
            tools: List[ToolInfo] = []
            cursor = None
            while True:
                result = await self._rpc("tools/list", {"cursor": cursor} if cursor else None)
                for tool in result.get("tools", []):
                    schema = tool.get("inputSchema")
                    tools.append(ToolInfo(
                        name=tool["name"],
                        description=tool.get("description"),
                        input_schema=json.dumps(schema) if schema is not None else None,
                    ))
                cursor = result.get("nextCursor")
                if not cursor:
                    break
        except McpCallError as e:
            console.warning(f"Failed to list tools from {self.server_url}: {e}")
            return e.to_failure()
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            console.warning(f"Malformed tool list from {self.server_url}: {e}")
            return ToolFailure(kind=ToolErrorKind.INVALID_RESPONSE, message=f"Malformed tool list: {e}")

        console.info(f"Retrieved {len(tools)} tools from MCP server: {self.server_url}")
        return ToolListSuccess(tools=tools)

    async def call_tool(self, tool_name: str, arguments: str) -> ToolCallOutcome:
        console.debug(f"Calling tool '{tool_name}' on MCP server: {self.server_url}")
        try:
            parsed_arguments = json.loads(arguments or "{}")
        except ValueError as e:
            return ToolFailure(kind=ToolErrorKind.SERVER_ERROR, message=f"Tool arguments are not valid JSON: {e}")
        if not isinstance(parsed_arguments, dict):
            return ToolFailure(kind=ToolErrorKind.SERVER_ERROR, message="Tool arguments must be a JSON object")

        try:
            await self._ensure_initialized()
            result = await self._rpc("tools/call", {"name": tool_name, "arguments": parsed_arguments})
        except McpCallError as e:
            console.warning(f"Tool '{tool_name}' failed on {self.server_url}: {e}")
            return e.to_failure()

        text = self._render_content(result.get("content") or [])
        if result.get("isError"):
            return ToolFailure(kind=ToolErrorKind.SERVER_ERROR, message=text or f"Tool '{tool_name}' reported an error")
        return ToolCallSuccess(value=text)

    @staticmethod
    def _render_content(content: List[Any]) -> str:
        parts = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text", "")))
            else:
                parts.append(json.dumps(item))
        return "\n".join(parts)

    async def close(self):
        await self._http.aclose()
