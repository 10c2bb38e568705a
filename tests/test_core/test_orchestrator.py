import asyncio
import json

import httpx
import pytest

from toolchat.core.exceptions import ProviderRequestFailed
from toolchat.core.orchestrator import (
    TOOL_CATALOGUE_HEADER,
    ToolCallingLoop,
    build_system_prompt,
    format_tool_results,
    strip_tool_catalogue,
)
from toolchat.core.tool_registry import McpToolService, ToolService
from toolchat.models.common import ChatResponse, Message, TokenUsage
from toolchat.models.tool_models import (
    ToolCallSuccess,
    ToolErrorKind,
    ToolFailure,
    ToolInfo,
    ToolListSuccess,
    ToolRequest,
)
from toolchat.services.llm_connector import LLMProvider
from toolchat.services.mcp_client import McpHttpClient


class ScriptedProvider(LLMProvider):
    """Returns the scripted responses in order, repeating the last one forever."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    async def send_request(self, request):
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return ChatResponse(content=item)
        return item


class FakeToolService(ToolService):
    def __init__(self, tools=None, results=None, listing_error=None):
        self.tools = tools or []
        self.results = results or {}
        self.listing_error = listing_error
        self.calls = []

    async def get_available_tools(self):
        if self.listing_error is not None:
            return self.listing_error
        return ToolListSuccess(tools=self.tools)

    async def call_tool(self, tool_name, arguments):
        self.calls.append((tool_name, arguments))
        result = self.results.get(tool_name)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return ToolFailure(kind=ToolErrorKind.SERVER_ERROR, message=f"unknown tool {tool_name}")
        return result


CALC = ToolInfo(name="calc", description="Evaluates arithmetic", input_schema='{"type": "object"}')


@pytest.mark.asyncio
async def test_plain_answer_without_tools_is_single_round(settings):
    provider = ScriptedProvider(ChatResponse(content="4", usage=TokenUsage(total_tokens=12)))
    loop = ToolCallingLoop(provider, settings)
    history = [Message.system(settings.SYSTEM_PROMPT)]

    response = await loop.run("What's 2+2?", history)

    assert response.content == "4"
    assert response.usage.total_tokens == 12
    assert not response.iteration_limit_reached
    assert len(provider.requests) == 1
    assert [m.role for m in history] == ["system", "user", "assistant"]
    assert history[1].content == "What's 2+2?"
    assert history[2].content == "4"
    assert TOOL_CATALOGUE_HEADER not in history[0].content


@pytest.mark.asyncio
async def test_tool_call_round_trip_returns_second_response(settings):
    first = '{"tool":"calc","arguments":{"expr":"2+2"}}'
    provider = ScriptedProvider(first, "The result is 4.")
    tools = FakeToolService(tools=[CALC], results={"calc": ToolCallSuccess(value="4")})
    loop = ToolCallingLoop(provider, settings, tools)
    history = [Message.system(settings.SYSTEM_PROMPT)]

    response = await loop.run("What's 2+2?", history)

    assert response.content == "The result is 4."
    assert len(provider.requests) == 2
    assert tools.calls == [("calc", json.dumps({"expr": "2+2"}))]
    assert [m.role for m in history] == ["system", "user", "assistant", "user", "assistant"]
    assert history[2].content == first
    assert "Tool execution results:" in history[3].content
    assert "Result: 4" in history[3].content
    # The second request replays the tool-call utterance and the results
    assert provider.requests[1].messages[-1] == history[3]


@pytest.mark.asyncio
async def test_system_prompt_gets_tool_catalogue(settings):
    provider = ScriptedProvider("hello")
    tools = FakeToolService(tools=[CALC])
    loop = ToolCallingLoop(provider, settings, tools)
    history = [Message.system("Base prompt")]

    await loop.run("hi", history)

    prompt = history[0].content
    assert prompt.startswith("Base prompt")
    assert TOOL_CATALOGUE_HEADER in prompt
    assert "`calc`: Evaluates arithmetic" in prompt
    assert 'Input schema: {"type": "object"}' in prompt
    assert provider.requests[0].messages[0].content == prompt


@pytest.mark.asyncio
async def test_catalogue_is_not_duplicated_across_turns(settings):
    provider = ScriptedProvider("ok")
    loop = ToolCallingLoop(provider, settings, FakeToolService(tools=[CALC]))
    history = [Message.system("Base prompt")]

    await loop.run("one", history)
    await loop.run("two", history)

    assert history[0].content.count(TOOL_CATALOGUE_HEADER) == 1
    assert len(history) == 5


@pytest.mark.asyncio
async def test_empty_history_gets_synthesized_system_prompt(settings):
    provider = ScriptedProvider("fine")
    loop = ToolCallingLoop(provider, settings)
    history = []

    await loop.run("hello", history)

    assert history[0] == Message.system(settings.SYSTEM_PROMPT)
    assert [m.role for m in history] == ["system", "user", "assistant"]


@pytest.mark.asyncio
async def test_listing_failure_degrades_to_single_shot(settings):
    provider = ScriptedProvider("plain answer")
    failure = ToolFailure(kind=ToolErrorKind.CONNECTION_FAILED, message="down")
    loop = ToolCallingLoop(provider, settings, FakeToolService(listing_error=failure))
    history = [Message.system("Base prompt\n\n" + TOOL_CATALOGUE_HEADER + "\nstale")]

    response = await loop.run("hi", history)

    assert response.content == "plain answer"
    assert history[0].content == "Base prompt"


@pytest.mark.asyncio
async def test_loop_never_exceeds_iteration_ceiling(settings):
    settings = settings.model_copy(update={"MAX_TOOL_ITERATIONS": 3})
    always_tool = '{"tool": "calc", "arguments": {}}'
    provider = ScriptedProvider(always_tool)
    tools = FakeToolService(tools=[CALC], results={"calc": ToolCallSuccess(value="again")})
    loop = ToolCallingLoop(provider, settings, tools)
    history = [Message.system(settings.SYSTEM_PROMPT)]

    response = await loop.run("loop forever", history)

    assert len(provider.requests) == 3
    assert response.iteration_limit_reached
    assert response.content == always_tool
    assert history[-1].role == "assistant"


@pytest.mark.asyncio
async def test_tool_request_without_tool_service_resolves_to_not_configured(settings):
    settings = settings.model_copy(update={"MAX_TOOL_ITERATIONS": 4})
    provider = ScriptedProvider('{"tool": "ghost", "arguments": {}}', "I cannot use tools.")
    loop = ToolCallingLoop(provider, settings, tool_service=None)
    history = [Message.system(settings.SYSTEM_PROMPT)]

    response = await loop.run("use a tool", history)

    assert response.content == "I cannot use tools."
    assert "Error: not_configured" in history[3].content


@pytest.mark.asyncio
async def test_hallucinated_tools_without_service_still_terminate(settings):
    settings = settings.model_copy(update={"MAX_TOOL_ITERATIONS": 2})
    provider = ScriptedProvider('{"tool": "ghost"}')
    loop = ToolCallingLoop(provider, settings, tool_service=None)

    response = await loop.run("go", [])

    assert response.iteration_limit_reached
    assert len(provider.requests) == 2


@pytest.mark.asyncio
async def test_tools_run_sequentially_in_order_despite_failures(settings):
    batch = json.dumps([
        {"tool": "first", "arguments": {"n": 1}},
        {"tool": "broken", "arguments": {}},
        {"tool": "exploding", "arguments": {}},
        {"tool": "last", "arguments": {"n": 3}},
    ])
    provider = ScriptedProvider(batch, "done")
    tools = FakeToolService(results={
        "first": ToolCallSuccess(value="one"),
        "broken": ToolFailure(kind=ToolErrorKind.TIMEOUT, message="too slow"),
        "exploding": RuntimeError("boom"),
        "last": ToolCallSuccess(value="three"),
    })
    loop = ToolCallingLoop(provider, settings, tools)
    history = [Message.system(settings.SYSTEM_PROMPT)]

    response = await loop.run("batch", history)

    assert response.content == "done"
    assert [name for name, _ in tools.calls] == ["first", "broken", "exploding", "last"]
    results_block = history[3].content
    assert results_block.index("Result: one") < results_block.index("Error: timeout: too slow")
    assert results_block.index("Error: timeout: too slow") < results_block.index("Error: server_error: boom")
    assert results_block.index("Error: server_error: boom") < results_block.index("Result: three")


@pytest.mark.asyncio
async def test_provider_failure_keeps_committed_history(settings):
    provider = ScriptedProvider('{"tool": "calc"}', ProviderRequestFailed("down", status_code=503))
    tools = FakeToolService(tools=[CALC], results={"calc": ToolCallSuccess(value="4")})
    loop = ToolCallingLoop(provider, settings, tools)
    history = [Message.system(settings.SYSTEM_PROMPT)]

    with pytest.raises(ProviderRequestFailed):
        await loop.run("compute", history)

    # user, assistant tool call, pending tool results that were sent
    assert [m.role for m in history] == ["system", "user", "assistant", "user"]


@pytest.mark.asyncio
async def test_cancellation_appends_nothing_for_unfinished_round(settings):
    started = asyncio.Event()

    class HangingProvider(LLMProvider):
        async def send_request(self, request):
            started.set()
            await asyncio.sleep(3600)

    loop = ToolCallingLoop(HangingProvider(), settings)
    history = [Message.system(settings.SYSTEM_PROMPT)]
    task = asyncio.create_task(loop.run("hello", history))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert [m.role for m in history] == ["system", "user"]


@pytest.mark.asyncio
async def test_temperature_override_is_used(settings):
    provider = ScriptedProvider("ok")
    loop = ToolCallingLoop(provider, settings)

    await loop.run("hi", [], temperature=1.5)
    await loop.run("hi", [])

    assert provider.requests[0].temperature == 1.5
    assert provider.requests[1].temperature == settings.TEMPERATURE
    assert provider.requests[0].model == settings.MODEL
    assert provider.requests[0].max_tokens == settings.MAX_TOKENS


def test_format_tool_results_separates_entries():
    text = format_tool_results([
        (ToolRequest(tool_name="a", arguments='{"x": 1}'), ToolCallSuccess(value="ok")),
        (ToolRequest(tool_name="b"), ToolFailure(kind=ToolErrorKind.NOT_CONFIGURED, message="no service")),
    ])

    assert text == (
        'Tool: a\nArguments: {"x": 1}\nResult: ok\n---\n'
        "Tool: b\nArguments: {}\nError: not_configured: no service"
    )


def test_build_system_prompt_round_trips_base_prompt():
    prompt = build_system_prompt("Base", [ToolInfo(name="t")])

    assert strip_tool_catalogue(prompt) == "Base"
    assert build_system_prompt(prompt, []) == "Base"


@pytest.mark.asyncio
async def test_raising_tool_listing_degrades_to_single_shot(settings):
    class BrokenListing(FakeToolService):
        async def get_available_tools(self):
            raise AttributeError("'str' object has no attribute 'get'")

    provider = ScriptedProvider("hi")
    loop = ToolCallingLoop(provider, settings, BrokenListing())
    history = [Message.system("Base prompt")]

    response = await loop.run("hello", history)

    assert response.content == "hi"
    assert len(provider.requests) == 1
    assert history[0].content == "Base prompt"


@pytest.mark.asyncio
async def test_malformed_mcp_listing_degrades_to_single_shot(settings):
    def handler(request):
        payload = json.loads(request.content)
        if "id" not in payload:
            return httpx.Response(202)
        result = {} if payload["method"] == "initialize" else {"tools": ["calc"]}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    service = McpToolService([McpHttpClient("http://mcp.test/mcp", transport=httpx.MockTransport(handler))])
    provider = ScriptedProvider("hi")
    loop = ToolCallingLoop(provider, settings, service)

    response = await loop.run("hello", [])

    assert response.content == "hi"
    assert not response.iteration_limit_reached
