"""Custom exceptions for toolchat."""

from typing import Optional


class ToolchatError(Exception):
    """Base exception for toolchat."""

    pass


class ConfigurationError(ToolchatError):
    """Configuration-related errors."""

    pass


class ProviderError(ToolchatError):
    """Failures of the language-model endpoint."""

    pass


class ProviderRequestFailed(ProviderError):
    """Transport or HTTP-level failure (connection refused, 4xx/5xx, timeout)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderEmptyResponse(ProviderError):
    """The endpoint answered successfully but without usable content."""

    def __init__(self, message: str = "Response does not contain content"):
        super().__init__(message)


class ProviderInvalidResponse(ProviderError):
    """Content was returned but not in the expected response envelope."""

    pass
