# Builds the runtime objects (provider, tools, persistence, conversation) from settings.

from dataclasses import dataclass
from typing import Optional

from toolchat.core.config import Settings
from toolchat.core.conversation_manager import ConversationManager, SummarizationCallback
from toolchat.core.tool_registry import McpToolService, ToolService
from toolchat.services.llm_connector import LLMProvider, create_provider
from toolchat.services.mcp_client import McpHttpClient
from toolchat.services.session_manager import HistoryStore, create_history_store
from toolchat.utils.logger import console


@dataclass
class Runtime:
    provider: LLMProvider
    tool_service: Optional[ToolService]
    store: Optional[HistoryStore]
    conversation: ConversationManager

    async def close(self):
        if self.tool_service is not None:
            await self.tool_service.close()
        if self.store is not None:
            await self.store.close()
        await self.provider.close()


def create_tool_service(settings: Settings) -> Optional[ToolService]:
    if not settings.MCP_SERVER_URLS:
        console.info("No MCP servers configured, tools are disabled.")
        return None
    clients = [McpHttpClient(url, timeout=settings.MCP_REQUEST_TIMEOUT_SECONDS) for url in settings.MCP_SERVER_URLS]
    return McpToolService(clients)


async def build_runtime(settings: Settings, on_summarization: Optional[SummarizationCallback] = None) -> Runtime:
    """Creates every collaborator and restores the saved history."""
    console.set_level(settings.LOG_LEVEL)
    provider = create_provider(settings)
    tool_service = create_tool_service(settings)
    store = create_history_store(settings)
    conversation = ConversationManager(
        provider,
        settings,
        tool_service=tool_service,
        store=store,
        on_summarization=on_summarization,
    )
    await conversation.initialize()
    return Runtime(provider=provider, tool_service=tool_service, store=store, conversation=conversation)
