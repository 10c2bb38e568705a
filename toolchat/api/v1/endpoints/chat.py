# The module is to define the API endpoints for chat interactions.
# Date: 2025-10-07
# Version: 0.2.0

from fastapi import APIRouter, Depends, HTTPException

from toolchat.api.deps import get_runtime
from toolchat.core.bootstrap import Runtime
from toolchat.core.exceptions import ProviderError
from toolchat.models.api_models import ChatRequest, ChatResponse
from toolchat.utils.logger import console

router = APIRouter()


@router.post("/", response_model=ChatResponse)
async def chat(request: ChatRequest, runtime: Runtime = Depends(get_runtime)):
    """
    Handles a single turn of the conversation, including any tool calls.
    """
    console.info(f"Received chat request (length: {len(request.user_input)}).")
    try:
        response = await runtime.conversation.send_request(request.user_input, request.temperature)
    except ProviderError as e:
        console.error(f"Chat turn failed: {e}")
        raise HTTPException(status_code=502, detail=f"Language model request failed: {e}. Please retry.")

    return ChatResponse(
        content=response.content,
        iteration_limit_reached=response.iteration_limit_reached,
        usage=response.usage,
    )


@router.post("/independent", response_model=ChatResponse)
async def chat_independent(request: ChatRequest, runtime: Runtime = Depends(get_runtime)):
    """
    Answers a one-off question without reading or recording the conversation history.
    """
    try:
        response = await runtime.conversation.send_independent_request(request.user_input, request.temperature)
    except ProviderError as e:
        console.error(f"Independent request failed: {e}")
        raise HTTPException(status_code=502, detail=f"Language model request failed: {e}")

    return ChatResponse(content=response.content, usage=response.usage)
