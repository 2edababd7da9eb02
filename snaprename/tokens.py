"""Token counting and estimation utilities."""

import threading
from dataclasses import dataclass, field


# Rough estimate for token counting of plain prompt text
CHARS_PER_TOKEN = 4

# Flat estimate for one image part when the provider reports no usage.
# Images are downscaled before sending, so the cost stays in this range.
ESTIMATED_TOKENS_PER_IMAGE = 800


@dataclass
class TokenUsage:
    """Tracks token usage across concurrent LLM calls."""

    input_tokens: int = 0
    output_tokens: int = 0
    llm_calls: int = 0
    estimated: bool = False
    _call_details: list[dict] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_call(self, input_tokens: int, output_tokens: int, description: str = "", estimated: bool = False) -> None:
        """Record a single LLM call's token usage."""
        with self._lock:
            self.input_tokens += input_tokens
            self.output_tokens += output_tokens
            self.llm_calls += 1
            self.estimated = self.estimated or estimated
            self._call_details.append(
                {
                    "call_number": self.llm_calls,
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "description": description,
                    "estimated": estimated,
                }
            )

    def add_usage_metadata(self, usage_metadata: dict | None, fallback_input_tokens: int, description: str = "") -> None:
        """Record a call from a LangChain ``usage_metadata`` dict, estimating if it is missing."""
        if usage_metadata:
            self.add_call(
                input_tokens=usage_metadata.get("input_tokens", 0),
                output_tokens=usage_metadata.get("output_tokens", 0),
                description=description,
            )
        else:
            self.add_call(
                input_tokens=fallback_input_tokens,
                output_tokens=0,
                description=description,
                estimated=True,
            )

    @property
    def total_tokens(self) -> int:
        """Total tokens used across all calls."""
        return self.input_tokens + self.output_tokens

    def summary(self) -> str:
        """Return a human-readable summary of token usage."""
        suffix = " (partly estimated)" if self.estimated else ""
        lines = [
            f"Token Usage Summary{suffix}:",
            f"  LLM calls: {self.llm_calls}",
            f"  Input tokens: {self.input_tokens:,}",
            f"  Output tokens: {self.output_tokens:,}",
            f"  Total tokens: {self.total_tokens:,}",
        ]
        return "\n".join(lines)


def estimate_tokens(text: str) -> int:
    """Estimate the number of tokens in a text string.

    This is a rough estimate based on character count.
    """
    return len(text) // CHARS_PER_TOKEN


def estimate_request_tokens(text: str, images: int = 1) -> int:
    """Estimate input tokens for a request made of text plus ``images`` image parts."""
    return estimate_tokens(text) + images * ESTIMATED_TOKENS_PER_IMAGE
