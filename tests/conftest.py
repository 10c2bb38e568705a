import pytest

from toolchat.core.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        LLM_API_KEY="test-key",
        MODEL="test-model",
        MAX_TOKENS=256,
        TEMPERATURE=0.3,
        SYSTEM_PROMPT="You are a test assistant.",
        MEMORY_STORE_TYPE="none",
        MCP_SERVER_URLS=[],
        SUMMARIZATION_TOKEN_THRESHOLD=4000,
        SUMMARIZATION_MODEL="summary-model",
        SUMMARIZATION_MAX_TOKENS=100,
        SUMMARIZATION_TEMPERATURE=0.1,
    )
