# Configuration settings for toolchat, loaded from the environment and an optional .env file.
# Date: 2025-10-02
# Version: 0.2.0

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = "Answers must be short and succinct"
DEFAULT_SUMMARIZATION_SYSTEM_PROMPT = "You are a helpful assistant that summarizes conversations concisely."
DEFAULT_SUMMARIZATION_PROMPT = (
    "Please provide a brief summary of the conversation so far, capturing the key topics, "
    "questions, and answers discussed. Keep it concise and focused on the main points."
)
DEFAULT_REMINDER_PROMPT = "Describe the events listed below in a few friendly sentences.\n\n"


class Settings(BaseSettings):
    """
    Application settings. Every field can be overridden by an environment
    variable of the same name (or a line in `.env`).

    Attributes:
        LLM_PROVIDER (str): Which model endpoint implementation to use.
        LLM_API_KEY (str): API key for the model endpoint.
        LLM_BASE_URL (str): Base URL of the OpenAI-compatible endpoint.
        MODEL (str): Model id for the main conversation.
        MAX_TOKENS (int): Max output tokens per request.
        TEMPERATURE (float): Sampling temperature in [0, 2].
        SYSTEM_PROMPT (str): System prompt placed at index 0 of the history.
        USE_MESSAGE_HISTORY (bool): Whether turns share one persistent history.
        MAX_TOOL_ITERATIONS (int): Ceiling on model rounds within one user turn.
        SUMMARIZATION_TOKEN_THRESHOLD (int): Total tokens above which history is condensed.
        MEMORY_STORE_TYPE (str): Where history is persisted: json, redis or none.
        MCP_SERVER_URLS (List[str]): MCP servers offering tools; empty means no tools.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model endpoint
    LLM_PROVIDER: Literal["openai_compatible"] = "openai_compatible"
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://api.perplexity.ai"
    MODEL: str = "sonar-pro"
    MAX_TOKENS: int = Field(default=5000, gt=0)
    TEMPERATURE: float = Field(default=0.3, ge=0.0, le=2.0)
    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    REQUEST_TIMEOUT_SECONDS: float = 60.0
    # None forwards `disable_search` only to Perplexity endpoints
    PASS_DISABLE_SEARCH: Optional[bool] = None

    # Conversation
    USE_MESSAGE_HISTORY: bool = True
    MAX_TOOL_ITERATIONS: int = Field(default=10, ge=1)
    DIALOG_END_MARKER: str = "###END###"
    PRICE_PER_MILLION_TOKENS: float = 1.0

    # Summarization
    ENABLE_SUMMARIZATION: bool = True
    SUMMARIZATION_TOKEN_THRESHOLD: int = 4000
    SUMMARIZATION_MODEL: str = "sonar"
    SUMMARIZATION_MAX_TOKENS: int = Field(default=500, gt=0)
    SUMMARIZATION_TEMPERATURE: float = Field(default=0.3, ge=0.0, le=2.0)
    SUMMARIZATION_SYSTEM_PROMPT: str = DEFAULT_SUMMARIZATION_SYSTEM_PROMPT
    SUMMARIZATION_PROMPT: str = DEFAULT_SUMMARIZATION_PROMPT

    # Persistence
    MEMORY_STORE_TYPE: str = "json"
    MEMORY_STORE_PATH: Optional[str] = None
    REDIS_URL: str = "redis://localhost:6379/0"
    HISTORY_KEY: str = "toolchat:history"
    HISTORY_TTL_SECONDS: Optional[int] = None

    # MCP tool servers
    MCP_SERVER_URLS: List[str] = Field(default_factory=list)
    MCP_REQUEST_TIMEOUT_SECONDS: float = 15.0

    # Reminder checker
    REMINDER_TOOL_NAME: str = "reminder.list"
    REMINDER_PROMPT: str = DEFAULT_REMINDER_PROMPT
    REMINDER_INTERVAL_SECONDS: float = 60.0

    LOG_LEVEL: str = "INFO"

    def forwards_disable_search(self) -> bool:
        if self.PASS_DISABLE_SEARCH is not None:
            return self.PASS_DISABLE_SEARCH
        return "perplexity.ai" in self.LLM_BASE_URL


# lru_cache to cache the settings instance.
@lru_cache
def get_settings() -> Settings:
    return Settings()


if __name__ == "__main__":
    settings = get_settings()
    print(settings.model_dump_json(indent=4))
