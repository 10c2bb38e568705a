# This module provides an API endpoint listing the tools offered by the MCP servers.
# Date: 2025-10-07
# Version: 0.2.0

from fastapi import APIRouter, Depends

from toolchat.api.deps import get_runtime
from toolchat.core.bootstrap import Runtime
from toolchat.models.api_models import ToolListResponse
from toolchat.models.tool_models import ToolFailure

router = APIRouter()


@router.get("/", response_model=ToolListResponse, summary="List Tools")
async def list_tools(runtime: Runtime = Depends(get_runtime)):
    """
    Lists the available tools. Failures are reported in `error` with an empty list.
    """
    if runtime.tool_service is None:
        return ToolListResponse(tools=[], error="No MCP servers configured")

    result = await runtime.tool_service.get_available_tools()
    if isinstance(result, ToolFailure):
        return ToolListResponse(tools=[], error=str(result))
    return ToolListResponse(tools=result.tools)
