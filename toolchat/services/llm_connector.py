# The module provides the language-model endpoint used by the conversation loop.
# Date: 2025-10-03
# Version: 0.2.0

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI
from pydantic import ValidationError

from toolchat.core.config import Settings
from toolchat.core.exceptions import (
    ConfigurationError,
    ProviderEmptyResponse,
    ProviderInvalidResponse,
    ProviderRequestFailed,
)
from toolchat.models.common import ChatRequest, ChatResponse, TokenUsage
from toolchat.utils.logger import console


class LLMProvider(ABC):
    """
    Interface for language-model endpoints. New providers implement
    `send_request`; the conversation loop never branches on the provider.
    """

    @abstractmethod
    async def send_request(self, request: ChatRequest) -> ChatResponse:
        """
        Sends one chat request and returns the response.

        Raises:
            ProviderRequestFailed: Transport or HTTP-level failure.
            ProviderEmptyResponse: The call succeeded but carried no content.
            ProviderInvalidResponse: The payload could not be read.
        """
        pass

    async def close(self):
        """Releases network resources held by the provider."""
        return None


class OpenAICompatibleProvider(LLMProvider):
    """
    Talks to any endpoint implementing the OpenAI chat-completions API
    (OpenAI, Perplexity, DeepSeek, OpenRouter, a local vLLM...).
    """

    def __init__(self, settings: Settings, client: AsyncOpenAI = None):
        self._pass_disable_search = settings.forwards_disable_search()
        self._client = client or AsyncOpenAI(
            api_key=settings.LLM_API_KEY,
            base_url=settings.LLM_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )

    def _to_api_messages(self, request: ChatRequest) -> List[Dict[str, Any]]:
        messages = []
        for message in request.messages:
            payload: Dict[str, Any] = {"role": message.role, "content": message.content}
            if self._pass_disable_search:
                payload["disable_search"] = message.disable_search
            messages.append(payload)
        return messages

    async def send_request(self, request: ChatRequest) -> ChatResponse:
        console.debug(
            f"Sending LLM request (model: {request.model}, messages: {len(request.messages)}, "
            f"max_tokens: {request.max_tokens})"
        )
        try:
            response = await self._client.chat.completions.create(
                model=request.model,
                messages=self._to_api_messages(request),
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            )
        except APIStatusError as e:
            message = str(e.body) if e.body is not None else e.message
            if isinstance(e.body, dict):
                message = e.body.get("message", message)
            console.error(f"LLM endpoint returned an error ({e.status_code}): {message}")
            raise ProviderRequestFailed(f"API error ({e.status_code}): {message}", status_code=e.status_code) from e
        except APIConnectionError as e:
            console.error(f"Failed to reach the LLM endpoint: {e}")
            raise ProviderRequestFailed(f"Failed to send request: {e}") from e
        except APIError as e:
            console.error(f"LLM endpoint call failed: {e}")
            raise ProviderInvalidResponse(f"Failed to parse response: {e}") from e

        return self._to_domain_response(response)

    def _to_domain_response(self, response: Any) -> ChatResponse:
        try:
            choices = response.choices or []
            if not choices:
                raise ProviderEmptyResponse()
            content = choices[0].message.content
            raw_usage = response.usage.model_dump() if response.usage is not None else None
            usage = TokenUsage.model_validate(raw_usage) if raw_usage else None
        except ProviderEmptyResponse:
            console.warning("Received a response without choices from the LLM endpoint.")
            raise
        except (AttributeError, TypeError, ValidationError) as e:
            console.error(f"Failed to read the LLM response envelope: {e}")
            raise ProviderInvalidResponse(f"Failed to parse response: {e}") from e

        if not content or not content.strip():
            console.warning("Received empty content from the LLM endpoint.")
            raise ProviderEmptyResponse()

        console.debug(f"Received response (content length: {len(content)}, usage: {usage})")
        return ChatResponse(content=content, usage=usage)

    async def close(self):
        await self._client.close()
        console.info("LLM provider closed.")


_PROVIDERS = {
    "openai_compatible": OpenAICompatibleProvider,
}


def create_provider(settings: Settings) -> LLMProvider:
    """
    Acts as a factory for the configured model endpoint.

    Raises:
        ConfigurationError: If LLM_PROVIDER names an unknown provider.
    """
    provider_cls = _PROVIDERS.get(settings.LLM_PROVIDER)
    if provider_cls is None:
        raise ConfigurationError(f"Unsupported LLM provider: {settings.LLM_PROVIDER}")
    return provider_cls(settings)
