# The module defines the tool-side data model: catalogue entries, parsed requests and call outcomes.
# Date: 2025-10-02
# Version: 0.2.0

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ToolInfo(BaseModel):
    """
    A tool offered by the tool-execution service.
    Attributes:
        name (str): The name the model uses to invoke the tool.
        description (Optional[str]): Human readable description.
        input_schema (Optional[str]): The JSON schema of the arguments, serialized.
    """
    name: str
    description: Optional[str] = None
    input_schema: Optional[str] = None


class ToolRequest(BaseModel):
    """
    A tool invocation parsed from model output. Lives for one loop round only.
    Attributes:
        tool_name (str): The requested tool.
        arguments (str): The arguments as a serialized JSON object, `{}` when absent.
    """
    model_config = ConfigDict(frozen=True)

    tool_name: str
    arguments: str = "{}"


class ToolErrorKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    INVALID_RESPONSE = "invalid_response"


class ToolFailure(BaseModel):
    """Error branch of every tool-service result."""
    model_config = ConfigDict(frozen=True)

    kind: ToolErrorKind
    message: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}" if self.message else self.kind.value


class ToolCallSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str


class ToolListSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    tools: List[ToolInfo] = Field(default_factory=list)


ToolCallOutcome = Union[ToolCallSuccess, ToolFailure]
ToolListOutcome = Union[ToolListSuccess, ToolFailure]
