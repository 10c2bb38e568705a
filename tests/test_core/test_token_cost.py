from toolchat.core.token_cost import TokenCostCalculator
from toolchat.models.common import TokenUsage


def test_price_scales_with_total_tokens(settings):
    calculator = TokenCostCalculator(settings.model_copy(update={"PRICE_PER_MILLION_TOKENS": 2.0}))

    assert calculator.calculate_price(0) == 0
    assert calculator.calculate_price(500_000) == 1.0


def test_usage_rows_list_only_reported_counters(settings):
    calculator = TokenCostCalculator(settings)
    rows = calculator.usage_rows(TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15))

    assert rows == [
        ("Prompt tokens", "10"),
        ("Completion tokens", "5"),
        ("Total tokens", "15"),
        ("Price", "$0.000015"),
    ]


def test_usage_rows_without_usage(settings):
    calculator = TokenCostCalculator(settings)

    assert calculator.usage_rows(None) == []
    assert calculator.usage_rows(TokenUsage()) == []
