import asyncio

import pytest

from toolchat.core.conversation_manager import ConversationManager
from toolchat.core.tool_registry import ToolService
from toolchat.models.common import ChatResponse
from toolchat.models.tool_models import ToolCallSuccess, ToolErrorKind, ToolFailure, ToolListSuccess
from toolchat.services.llm_connector import LLMProvider
from toolchat.services.reminder_checker import ReminderChecker


class EchoProvider(LLMProvider):
    def __init__(self):
        self.requests = []

    async def send_request(self, request):
        self.requests.append(request)
        return ChatResponse(content="You have a dentist appointment at 3pm.")


class ReminderTools(ToolService):
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def get_available_tools(self):
        return ToolListSuccess(tools=[])

    async def call_tool(self, tool_name, arguments):
        self.calls.append((tool_name, arguments))
        return self.outcome


@pytest.mark.asyncio
async def test_check_once_describes_reminders_without_touching_history(settings):
    provider = EchoProvider()
    manager = ConversationManager(provider, settings)
    tools = ReminderTools(ToolCallSuccess(value="[dentist 15:00]"))
    outputs = []
    checker = ReminderChecker(manager, tools, settings, outputs.append)

    content = await checker.check_once()

    assert content == "You have a dentist appointment at 3pm."
    assert outputs == [content]
    assert tools.calls == [(settings.REMINDER_TOOL_NAME, "{}")]
    assert provider.requests[0].messages[-1].content == f"{settings.REMINDER_PROMPT}[dentist 15:00]"
    assert len(manager.get_history()) == 1


@pytest.mark.asyncio
async def test_check_once_skips_when_tool_fails_or_is_missing(settings):
    provider = EchoProvider()
    manager = ConversationManager(provider, settings)
    failing = ReminderTools(ToolFailure(kind=ToolErrorKind.TIMEOUT, message="slow"))

    assert await ReminderChecker(manager, failing, settings).check_once() is None
    assert await ReminderChecker(manager, None, settings).check_once() is None
    assert provider.requests == []


@pytest.mark.asyncio
async def test_toggle_starts_and_stops_background_task(settings):
    settings = settings.model_copy(update={"REMINDER_INTERVAL_SECONDS": 3600})
    manager = ConversationManager(EchoProvider(), settings)
    outputs = []
    checker = ReminderChecker(manager, ReminderTools(ToolCallSuccess(value="none")), settings, outputs.append)

    assert checker.toggle() is True
    assert checker.is_running
    for _ in range(5):
        await asyncio.sleep(0)

    assert checker.toggle() is False
    await asyncio.sleep(0)
    assert not checker.is_running
    assert len(outputs) == 1


@pytest.mark.asyncio
async def test_background_task_survives_unexpected_errors(settings):
    settings = settings.model_copy(update={"REMINDER_INTERVAL_SECONDS": 0})

    class ExplodingTools(ReminderTools):
        async def call_tool(self, tool_name, arguments):
            self.calls.append((tool_name, arguments))
            raise AttributeError("'str' object has no attribute 'get'")

    tools = ExplodingTools(None)
    checker = ReminderChecker(ConversationManager(EchoProvider(), settings), tools, settings)

    checker.start()
    for _ in range(10):
        await asyncio.sleep(0)

    assert checker.is_running
    assert len(tools.calls) >= 2
    checker.stop()
    await asyncio.sleep(0)
