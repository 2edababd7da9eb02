"""Tests for token usage tracking."""

from snaprename.tokens import ESTIMATED_TOKENS_PER_IMAGE, TokenUsage, estimate_request_tokens, estimate_tokens


class TestTokenUsage:
    """Tests for TokenUsage."""

    def test_add_call(self):
        usage = TokenUsage()

        usage.add_call(input_tokens=100, output_tokens=10, description="item A1")
        usage.add_call(input_tokens=50, output_tokens=5)

        assert usage.llm_calls == 2
        assert usage.total_tokens == 165
        assert usage.input_tokens == 150

    def test_add_usage_metadata(self):
        usage = TokenUsage()

        usage.add_usage_metadata({"input_tokens": 700, "output_tokens": 12, "total_tokens": 712}, 999)

        assert usage.input_tokens == 700
        assert usage.output_tokens == 12
        assert not usage.estimated

    def test_missing_usage_metadata_is_estimated(self):
        usage = TokenUsage()

        usage.add_usage_metadata(None, fallback_input_tokens=999)

        assert usage.input_tokens == 999
        assert usage.estimated
        assert "estimated" in usage.summary()

    def test_summary(self):
        usage = TokenUsage()
        usage.add_call(input_tokens=1000, output_tokens=200)

        summary = usage.summary()

        assert "LLM calls: 1" in summary
        assert "Total tokens: 1,200" in summary


class TestEstimates:
    """Tests for token estimation helpers."""

    def test_estimate_tokens(self):
        assert estimate_tokens("a" * 40) == 10

    def test_estimate_request_tokens(self):
        assert estimate_request_tokens("a" * 40, images=2) == 10 + 2 * ESTIMATED_TOKENS_PER_IMAGE
