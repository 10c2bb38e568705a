# Token usage display and cost estimation.

from typing import List, Optional, Tuple

from toolchat.core.config import Settings
from toolchat.models.common import TokenUsage


class TokenCostCalculator:
    def __init__(self, settings: Settings):
        self.price_per_million_tokens = settings.PRICE_PER_MILLION_TOKENS

    def calculate_price(self, total_tokens: int) -> float:
        return (total_tokens / 1_000_000) * self.price_per_million_tokens

    def usage_rows(self, usage: Optional[TokenUsage]) -> List[Tuple[str, str]]:
        """Rows for a usage table; only counters the provider reported are listed."""
        if usage is None:
            return []

        rows = []
        if usage.prompt_tokens is not None:
            rows.append(("Prompt tokens", str(usage.prompt_tokens)))
        if usage.completion_tokens is not None:
            rows.append(("Completion tokens", str(usage.completion_tokens)))
        if usage.reasoning_tokens is not None:
            rows.append(("Reasoning tokens", str(usage.reasoning_tokens)))
        if usage.total_tokens is not None:
            rows.append(("Total tokens", str(usage.total_tokens)))
            rows.append(("Price", f"${self.calculate_price(usage.total_tokens):.6f}"))
        return rows
