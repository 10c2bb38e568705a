# Periodically fetches reminders through the tool service and has the model describe them.
# Date: 2025-10-07
# Version: 0.2.0

import asyncio
from typing import Callable, Optional

from toolchat.core.config import Settings
from toolchat.core.conversation_manager import ConversationManager
from toolchat.core.exceptions import ProviderError
from toolchat.core.tool_registry import ToolService
from toolchat.models.tool_models import ToolFailure
from toolchat.utils.logger import console

ReminderCallback = Callable[[str], None]


class ReminderChecker:
    """
    Background task that calls the reminder tool every interval and hands
    the model's description of the result to `output_callback`.

    It only uses independent requests, so it never reads or writes the
    conversation history while a turn may be in flight.
    """

    def __init__(
        self,
        conversation_manager: ConversationManager,
        tool_service: Optional[ToolService],
        settings: Settings,
        output_callback: Optional[ReminderCallback] = None,
    ):
        self.conversation_manager = conversation_manager
        self.tool_service = tool_service
        self.tool_name = settings.REMINDER_TOOL_NAME
        self.prompt = settings.REMINDER_PROMPT
        self.interval = settings.REMINDER_INTERVAL_SECONDS
        self.output_callback = output_callback
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.is_running:
            console.debug("Reminder checker already running.")
            return
        console.info("Starting reminder checker.")
        self._task = asyncio.create_task(self._run())

    def stop(self):
        if self._task is not None:
            console.info("Stopping reminder checker.")
            self._task.cancel()
            self._task = None

    def toggle(self) -> bool:
        """Starts or stops the checker; returns whether it is now running."""
        if self.is_running:
            self.stop()
        else:
            self.start()
        console.info(f"Reminder checker toggled: {'ON' if self.is_running else 'OFF'}")
        return self.is_running

    async def _run(self):
        while True:
            try:
                await self.check_once()
            except ProviderError as e:
                console.warning(f"Reminder check failed: {e}")
            except Exception:
                console.exception("Unexpected error during reminder check")
            await asyncio.sleep(self.interval)

    async def check_once(self) -> Optional[str]:
        """
        Performs a single check. Returns the model's description, or None when
        the tool service is missing or the reminder tool failed.
        """
        if self.tool_service is None:
            console.debug("Tool service not available, skipping reminder check.")
            return None

        result = await self.tool_service.call_tool(self.tool_name, "{}")
        if isinstance(result, ToolFailure):
            console.warning(f"Failed to call '{self.tool_name}': {result}")
            return None

        response = await self.conversation_manager.send_independent_request(f"{self.prompt}{result.value}")
        if self.output_callback is not None:
            self.output_callback(response.content)
        return response.content
