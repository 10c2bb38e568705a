# The module defines the request and response bodies of the HTTP API.
# Date: 2025-10-07
# Version: 0.2.0

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from toolchat.models.common import Message, TokenUsage
from toolchat.models.tool_models import ToolInfo


class ChatRequest(BaseModel):
    """
    Defines the request body for the /v1/chat endpoints.
    Attributes:
        user_input (str): The user's text input.
        temperature (Optional[float]): Overrides the configured temperature for this turn.
    """
    user_input: str = Field(..., min_length=1, description="The user's text input.")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0, description="Temperature override.")


class ChatResponse(BaseModel):
    """
    Defines the response body for the /v1/chat endpoints.
    Attributes:
        role (str): Always 'assistant'.
        content (str): The model's answer.
        iteration_limit_reached (bool): True when the tool loop hit its round ceiling.
        usage (Optional[TokenUsage]): Token usage of the last model call.
    """
    role: Literal["assistant"] = "assistant"
    content: str
    iteration_limit_reached: bool = False
    usage: Optional[TokenUsage] = None


class HistoryResponse(BaseModel):
    messages: List[Message]


class ClearHistoryResponse(BaseModel):
    message: str
    history_size: int


class ToolListResponse(BaseModel):
    tools: List[ToolInfo]
    error: Optional[str] = None
