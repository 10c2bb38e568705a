# Condenses the conversation history once token usage grows past a threshold.
# Date: 2025-10-05
# Version: 0.2.0

from typing import List, Optional

from toolchat.core.config import Settings
from toolchat.models.common import ChatRequest, Message, TokenUsage
from toolchat.services.llm_connector import LLMProvider
from toolchat.utils.logger import console


class ConversationSummarizer:
    """
    Decides when to summarize and produces the summary text. It never
    touches the history it is given; replacing the history is the caller's job.
    """

    def __init__(self, provider: LLMProvider, settings: Settings):
        self.provider = provider
        self.settings = settings

    def should_summarize(self, previous_usage: Optional[TokenUsage]) -> bool:
        """
        True iff usage is known and its total strictly exceeds the threshold.
        Missing usage never triggers a summary.
        """
        if previous_usage is None or previous_usage.total_tokens is None:
            return False
        return previous_usage.total_tokens > self.settings.SUMMARIZATION_TOKEN_THRESHOLD

    async def summarize(self, history: List[Message]) -> str:
        """
        Sends [summarization system prompt] + history + [summarization prompt]
        with the dedicated summarization model and limits.
        """
        messages = [Message.system(self.settings.SUMMARIZATION_SYSTEM_PROMPT)]
        messages.extend(history)
        messages.append(Message.user(self.settings.SUMMARIZATION_PROMPT))

        request = ChatRequest(
            model=self.settings.SUMMARIZATION_MODEL,
            messages=messages,
            max_tokens=self.settings.SUMMARIZATION_MAX_TOKENS,
            temperature=self.settings.SUMMARIZATION_TEMPERATURE,
        )
        console.info(f"Summarizing {len(history)} messages with model '{request.model}'.")
        response = await self.provider.send_request(request)
        return response.content.strip()
