# This module handles the persistence of the conversation history across runs.
# Date: 2025-10-06
# Version: 0.2.0

import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from toolchat.core.config import Settings
from toolchat.models.common import Message
from toolchat.utils.logger import console

DEFAULT_HISTORY_FILE = "toolchat.history.json"

_history_adapter = TypeAdapter(List[Message])


class HistoryStore(ABC):
    """
    Interface for saving and loading the conversation history. `load_history`
    returns whatever was last saved, or an empty list.
    """

    @abstractmethod
    async def save_history(self, messages: List[Message]) -> bool:
        """Returns False when the history could not be written."""
        pass

    @abstractmethod
    async def load_history(self) -> List[Message]:
        pass

    @abstractmethod
    async def clear_history(self):
        pass

    async def close(self):
        return None


class JsonHistoryStore(HistoryStore):
    """Stores the history in a human-readable JSON file."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or DEFAULT_HISTORY_FILE)
        console.debug(f"Using JSON history file: {self.path.absolute()}")

    def _write(self, messages: List[Message]):
        # Write-then-rename so a crash never leaves a truncated file behind
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_bytes(_history_adapter.dump_json(messages, indent=2))
        os.replace(tmp_path, self.path)

    def _read(self) -> List[Message]:
        if not self.path.exists():
            console.debug("History file does not exist, returning empty history.")
            return []
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return []
        return _history_adapter.validate_json(raw)

    async def save_history(self, messages: List[Message]) -> bool:
        try:
            await asyncio.to_thread(self._write, list(messages))
        except OSError:
            console.exception(f"Failed to save conversation history to {self.path}.")
            return False
        console.debug(f"Saved {len(messages)} messages to {self.path}.")
        return True

    async def load_history(self) -> List[Message]:
        try:
            messages = await asyncio.to_thread(self._read)
        except (OSError, ValidationError):
            console.exception(f"Failed to load conversation history from {self.path}. Starting empty.")
            return []
        console.info(f"Loaded {len(messages)} messages from {self.path}.")
        return messages

    async def clear_history(self):
        try:
            await asyncio.to_thread(self.path.unlink, True)
            console.info("History file deleted.")
        except OSError:
            console.exception(f"Failed to delete history file {self.path}.")


class RedisHistoryStore(HistoryStore):
    """
    Persists the history as a JSON document under a single Redis key.
    """

    def __init__(self, redis_client: Redis, key: str, ttl_seconds: Optional[int] = None):
        self._redis_client = redis_client
        self._key = key
        self._ttl = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisHistoryStore":
        client = from_url(settings.REDIS_URL, decode_responses=True)
        console.info("Async Redis client for history persistence initialized.")
        return cls(client, settings.HISTORY_KEY, settings.HISTORY_TTL_SECONDS)

    async def save_history(self, messages: List[Message]) -> bool:
        try:
            payload = _history_adapter.dump_json(list(messages)).decode("utf-8")
            await self._redis_client.set(self._key, payload, ex=self._ttl)
        except RedisError:
            console.exception(f"Failed to save history '{self._key}' to Redis.")
            return False
        console.debug(f"History '{self._key}' saved to Redis.")
        return True

    async def load_history(self) -> List[Message]:
        try:
            payload = await self._redis_client.get(self._key)
            if not payload:
                console.info(f"History '{self._key}' not found in Redis. Starting a new one.")
                return []
            messages = _history_adapter.validate_json(payload)
        except RedisError:
            console.exception(f"Could not read history '{self._key}' from Redis. Please ensure Redis is running and accessible.")
            return []
        except ValidationError:
            console.exception(f"History '{self._key}' in Redis is corrupt. Starting a new one.")
            return []
        console.info(f"History '{self._key}' retrieved from Redis ({len(messages)} messages).")
        return messages

    async def clear_history(self):
        try:
            await self._redis_client.delete(self._key)
        except RedisError:
            console.exception(f"Failed to delete history '{self._key}' from Redis.")

    async def close(self):
        await self._redis_client.aclose()


def create_history_store(settings: Settings) -> Optional[HistoryStore]:
    """
    Builds the store named by MEMORY_STORE_TYPE, or None when persistence is off.

    Raises:
        ValueError: If the store type is not supported.
    """
    store_type = settings.MEMORY_STORE_TYPE.lower()
    if store_type == "json":
        return JsonHistoryStore(settings.MEMORY_STORE_PATH)
    if store_type == "redis":
        return RedisHistoryStore.from_settings(settings)
    if store_type == "none":
        return None
    raise ValueError(f"Unsupported memory store type: {settings.MEMORY_STORE_TYPE}. Supported types: json, redis, none")
