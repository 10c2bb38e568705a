# The module drives one user turn: model rounds, tool-call parsing and tool execution.
# Date: 2025-10-05
# Version: 0.2.0

from typing import List, Optional, Tuple

from toolchat.core.config import Settings
from toolchat.core.tool_parser import parse_tool_requests
from toolchat.core.tool_registry import ToolService
from toolchat.models.common import ChatRequest, ChatResponse, Message, SYSTEM_ROLE
from toolchat.models.tool_models import (
    ToolCallOutcome,
    ToolCallSuccess,
    ToolErrorKind,
    ToolFailure,
    ToolInfo,
    ToolRequest,
)
from toolchat.services.llm_connector import LLMProvider
from toolchat.utils.logger import console

# Marks where the tool catalogue starts inside the system prompt. Everything
# from this header on is regenerated at the start of every turn.
TOOL_CATALOGUE_HEADER = "### AVAILABLE TOOLS"

TOOL_CATALOGUE_TEMPLATE = TOOL_CATALOGUE_HEADER + """
You can call external tools. ALWAYS use an available tool instead of guessing or fabricating data.

{tool_definitions}

**How to call a tool:**
When you need a tool, respond with ONLY the tool call JSON and no other text:
{{"tool": "exact_tool_name", "arguments": {{"arg1": "value1"}}}}

To call several tools at once, respond with ONLY a JSON array:
[{{"tool": "first_tool", "arguments": {{}}}}, {{"tool": "second_tool", "arguments": {{"arg": "value"}}}}]

Arguments must be valid JSON matching the tool's input schema. You will then receive the
tool results and can call further tools or give your final answer. If no tool fits the task,
answer normally without any tool call."""

TOOL_RESULTS_TEMPLATE = (
    "Tool execution results:\n{results}\n\n"
    "Please provide your final answer based on these results."
)


def strip_tool_catalogue(prompt: str) -> str:
    """Returns `prompt` without a previously appended tool catalogue."""
    return prompt.split(TOOL_CATALOGUE_HEADER, 1)[0].rstrip()


def build_system_prompt(base_prompt: str, tools: List[ToolInfo]) -> str:
    base_prompt = strip_tool_catalogue(base_prompt)
    if not tools:
        return base_prompt

    lines = []
    for tool in tools:
        line = f"- `{tool.name}`"
        if tool.description:
            line += f": {tool.description}"
        if tool.input_schema:
            line += f"\n  Input schema: {tool.input_schema}"
        lines.append(line)

    catalogue = TOOL_CATALOGUE_TEMPLATE.format(tool_definitions="\n".join(lines))
    return f"{base_prompt}\n\n{catalogue}" if base_prompt else catalogue


def format_tool_results(results: List[Tuple[ToolRequest, ToolCallOutcome]]) -> str:
    blocks = []
    for request, outcome in results:
        lines = [f"Tool: {request.tool_name}", f"Arguments: {request.arguments}"]
        if isinstance(outcome, ToolCallSuccess):
            lines.append(f"Result: {outcome.value}")
        else:
            lines.append(f"Error: {outcome}")
        blocks.append("\n".join(lines))
    return "\n---\n".join(blocks)


class ToolCallingLoop:
    """
    Runs one user turn against the model endpoint, executing any tool calls
    the model asks for until it answers without one or the round ceiling is hit.

    The history passed to `run` is mutated in place: the system prompt at
    index 0 is refreshed, then the user message, every assistant response and
    every tool-results message are appended. On every exit path (answer,
    ceiling, provider error, cancellation) the history ends with a complete
    message and can be appended to.
    """

    def __init__(self, provider: LLMProvider, settings: Settings, tool_service: Optional[ToolService] = None):
        self.provider = provider
        self.settings = settings
        self.tool_service = tool_service
        self.max_iterations = settings.MAX_TOOL_ITERATIONS

    async def run(self, user_text: str, history: List[Message], temperature: Optional[float] = None) -> ChatResponse:
        console.debug(f"Processing request with tools (input length: {len(user_text)}, history size: {len(history)})")

        tools = await self._get_tools()
        console.info(f"Available tools: {len(tools)}")
        self._refresh_system_prompt(history, tools)

        pending = Message.user(user_text)
        last_response: Optional[ChatResponse] = None

        for iteration in range(1, self.max_iterations + 1):
            console.rule(f"Tool loop round {iteration}/{self.max_iterations}")

            history.append(pending)
            request = ChatRequest(
                model=self.settings.MODEL,
                messages=list(history),
                max_tokens=self.settings.MAX_TOKENS,
                temperature=self.settings.TEMPERATURE if temperature is None else temperature,
            )
            response = await self.provider.send_request(request)
            last_response = response
            # The model must see its own tool-call utterances on the next round
            history.append(Message.assistant(response.content))

            tool_requests = parse_tool_requests(response.content)
            console.debug(f"Parsed {len(tool_requests)} tool request(s): {[r.tool_name for r in tool_requests]}")

            if not tool_requests:
                console.success(f"No tool requests found, returning final answer (round {iteration}).")
                return response

            console.info(f"Executing {len(tool_requests)} tool(s) in round {iteration}.")
            results = await self._execute_tools(tool_requests)
            success_count = sum(1 for _, outcome in results if isinstance(outcome, ToolCallSuccess))
            console.info(f"Tool execution completed: {success_count}/{len(results)} successful.")

            pending = Message.user(TOOL_RESULTS_TEMPLATE.format(results=format_tool_results(results)))

        console.warning(f"Maximum tool calling iterations ({self.max_iterations}) reached.")
        return last_response.model_copy(update={"iteration_limit_reached": True})

    async def _get_tools(self) -> List[ToolInfo]:
        if self.tool_service is None:
            console.debug("Tool service not available, no tools.")
            return []

        try:
            result = await self.tool_service.get_available_tools()
        except Exception:
            console.exception("Error fetching tools from the tool service, continuing without tools")
            return []
        if isinstance(result, ToolFailure):
            console.warning(f"Failed to get tools from the tool service: {result}")
            return []
        return result.tools

    def _refresh_system_prompt(self, history: List[Message], tools: List[ToolInfo]):
        if history and history[0].role == SYSTEM_ROLE:
            # Keep existing content, which may carry a conversation summary
            history[0] = Message.system(build_system_prompt(history[0].content, tools))
        else:
            history.insert(0, Message.system(build_system_prompt(self.settings.SYSTEM_PROMPT, tools)))

    async def _execute_tools(self, tool_requests: List[ToolRequest]) -> List[Tuple[ToolRequest, ToolCallOutcome]]:
        if self.tool_service is None:
            console.warning("Tool service not available, cannot execute tools.")
            failure = ToolFailure(kind=ToolErrorKind.NOT_CONFIGURED, message="Tool service not available")
            return [(request, failure) for request in tool_requests]

        results = []
        for request in tool_requests:
            results.append((request, await self._execute_tool(request)))
        return results

    async def _execute_tool(self, request: ToolRequest) -> ToolCallOutcome:
        """Executes a single tool; unexpected exceptions become SERVER_ERROR outcomes."""
        console.info(f"Executing tool '{request.tool_name}'.")
        try:
            outcome = await self.tool_service.call_tool(request.tool_name, request.arguments)
        except Exception as e:
            console.exception(f"Error executing tool '{request.tool_name}'")
            return ToolFailure(kind=ToolErrorKind.SERVER_ERROR, message=str(e))

        if isinstance(outcome, ToolFailure):
            console.warning(f"Tool '{request.tool_name}' execution failed: {outcome}")
        else:
            console.debug(f"Tool '{request.tool_name}' executed successfully.")
        return outcome
