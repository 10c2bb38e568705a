# The module owns the conversation history and exposes the request modes used by the CLI and the API.
# Date: 2025-10-06
# Version: 0.2.0

import asyncio
from typing import Callable, List, Optional

from toolchat.core.config import Settings
from toolchat.core.exceptions import ProviderError
from toolchat.core.orchestrator import ToolCallingLoop
from toolchat.core.summarizer import ConversationSummarizer
from toolchat.core.tool_registry import ToolService
from toolchat.models.common import ChatRequest, ChatResponse, Message, SYSTEM_ROLE, TokenUsage
from toolchat.services.llm_connector import LLMProvider
from toolchat.services.session_manager import HistoryStore
from toolchat.utils.logger import console

SUMMARY_HEADER = "Summary of the conversation so far:"

# Called with True before summarization starts and False once it is done
SummarizationCallback = Callable[[bool], None]


class ConversationManager:
    """
    Owns the conversation history for the lifetime of one conversation.

    Turns, clears and loads are serialized by a single asyncio.Lock, so the
    tool loop always has exclusive write access to the history while it runs.
    `send_independent_request` never touches the history and does not take
    the lock, which makes it the only mode background tasks may use.
    """

    def __init__(
        self,
        provider: LLMProvider,
        settings: Settings,
        tool_service: Optional[ToolService] = None,
        store: Optional[HistoryStore] = None,
        on_summarization: Optional[SummarizationCallback] = None,
    ):
        self.provider = provider
        self.settings = settings
        self.tool_service = tool_service
        self.store = store
        self.on_summarization = on_summarization
        self.loop = ToolCallingLoop(provider, settings, tool_service)
        self.summarizer = ConversationSummarizer(provider, settings)
        self.last_usage: Optional[TokenUsage] = None
        # True when the latest save did not reach the store
        self.persist_failed = False
        self._lock = asyncio.Lock()
        self._history: List[Message] = self._fresh_history()

    def _fresh_history(self) -> List[Message]:
        if self.settings.USE_MESSAGE_HISTORY:
            return [Message.system(self.settings.SYSTEM_PROMPT)]
        return []

    async def initialize(self):
        """Restores the persisted history, if any."""
        if self.store is None or not self.settings.USE_MESSAGE_HISTORY:
            return
        async with self._lock:
            loaded = await self.store.load_history()
            if not loaded:
                console.info("No saved history found, starting a new conversation.")
                return
            if loaded[0].role != SYSTEM_ROLE:
                loaded.insert(0, Message.system(self.settings.SYSTEM_PROMPT))
            self._history = loaded
            console.success(f"Restored conversation history ({len(loaded)} messages).")

    async def send_request(self, user_text: str, temperature: Optional[float] = None) -> ChatResponse:
        """
        Runs one user turn with tool support. In history mode the turn is
        recorded in the owned history; otherwise it runs on a throwaway one.

        Provider errors propagate. The user message and completed rounds stay
        in the history and are persisted before the error reaches the caller.
        """
        if not self.settings.USE_MESSAGE_HISTORY:
            return await self.loop.run(user_text, [], temperature)

        async with self._lock:
            try:
                response = await self.loop.run(user_text, self._history, temperature)
            finally:
                await self._persist()

            self.last_usage = response.usage
            if self.settings.ENABLE_SUMMARIZATION and self.summarizer.should_summarize(response.usage):
                await self._summarize_history()
            return response

    async def send_independent_request(self, user_text: str, temperature: Optional[float] = None) -> ChatResponse:
        """A stand-alone system + user request that never reads or writes the history."""
        request = ChatRequest(
            model=self.settings.MODEL,
            messages=[Message.system(self.settings.SYSTEM_PROMPT), Message.user(user_text)],
            max_tokens=self.settings.MAX_TOKENS,
            temperature=self.settings.TEMPERATURE if temperature is None else temperature,
        )
        return await self.provider.send_request(request)

    async def clear_history(self):
        async with self._lock:
            self._history = self._fresh_history()
            self.last_usage = None
            if self.store is not None:
                await self.store.clear_history()
            console.info("Conversation history cleared.")

    def get_history(self) -> List[Message]:
        """A copy of the history; mutating it does not affect the conversation."""
        return list(self._history)

    async def _summarize_history(self):
        console.info(f"Token usage above {self.settings.SUMMARIZATION_TOKEN_THRESHOLD}, summarizing conversation.")
        self._notify_summarization(True)
        try:
            summary = await self.summarizer.summarize(list(self._history))
        except ProviderError:
            # The answer was already delivered; keep the full history and carry on
            console.exception("Summarization failed, continuing with the full history.")
            return
        finally:
            self._notify_summarization(False)

        self._history = [Message.system(f"{self.settings.SYSTEM_PROMPT}\n\n{SUMMARY_HEADER}\n{summary}")]
        await self._persist()
        console.success("Conversation history replaced by its summary.")

    def _notify_summarization(self, starting: bool):
        if self.on_summarization is not None:
            self.on_summarization(starting)

    async def _persist(self):
        if self.store is not None:
            self.persist_failed = not await self.store.save_history(list(self._history))
