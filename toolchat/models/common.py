# The module defines the conversation data model shared by every layer of toolchat.
# Date: 2025-10-02
# Version: 0.2.0

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]

SYSTEM_ROLE: Role = "system"
USER_ROLE: Role = "user"
ASSISTANT_ROLE: Role = "assistant"


class Message(BaseModel):
    """
    A single message of the conversation. Messages are immutable; their
    identity is their position in the history.
    Attributes:
        role (Role): The role of the message sender (system, user or assistant).
        content (str): The text of the message.
        disable_search (bool): Provider flag forwarded with the message.
    """
    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="The role of the message sender.")
    content: str = Field(..., description="The content of the message.")
    disable_search: bool = Field(default=True, description="Passed through to the provider.")

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=SYSTEM_ROLE, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=USER_ROLE, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=ASSISTANT_ROLE, content=content)


class ChatRequest(BaseModel):
    """
    One request to the model endpoint. Built fresh for every call.
    Attributes:
        model (str): The model id.
        messages (List[Message]): The ordered messages replayed to the model.
        max_tokens (int): Max output tokens.
        temperature (float): Sampling temperature in [0, 2].
    """
    model_config = ConfigDict(frozen=True)

    model: str
    messages: List[Message]
    max_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)


class TokenUsage(BaseModel):
    """Token counters reported by the provider. Every field is optional."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    search_context_size: Optional[str] = None
    citation_tokens: Optional[int] = None
    num_search_queries: Optional[int] = None
    reasoning_tokens: Optional[int] = None


class ChatResponse(BaseModel):
    """
    The answer to one request.
    Attributes:
        content (str): The text produced by the model.
        usage (Optional[TokenUsage]): Token usage, when the provider reports it.
        iteration_limit_reached (bool): True when a tool loop stopped at its round
            ceiling; `content` is then the last response received.
    """
    model_config = ConfigDict(frozen=True)

    content: str
    usage: Optional[TokenUsage] = None
    iteration_limit_reached: bool = False
