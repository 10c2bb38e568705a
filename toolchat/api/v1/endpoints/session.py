# The module is to define the API endpoints for managing the conversation history.
# Date: 2025-10-07
# Version: 0.2.0

from fastapi import APIRouter, Depends

from toolchat.api.deps import get_runtime
from toolchat.core.bootstrap import Runtime
from toolchat.models.api_models import ClearHistoryResponse, HistoryResponse
from toolchat.utils.logger import console

router = APIRouter()


@router.get("/history", response_model=HistoryResponse)
def get_history(runtime: Runtime = Depends(get_runtime)):
    """
    Returns a snapshot of the conversation history.
    """
    return HistoryResponse(messages=runtime.conversation.get_history())


@router.post("/clear", response_model=ClearHistoryResponse)
async def clear_history(runtime: Runtime = Depends(get_runtime)):
    """
    Resets the history to the system prompt and deletes the saved copy.
    """
    await runtime.conversation.clear_history()
    console.info("History cleared through the API.")
    return ClearHistoryResponse(
        message="Conversation history cleared successfully.",
        history_size=len(runtime.conversation.get_history()),
    )
