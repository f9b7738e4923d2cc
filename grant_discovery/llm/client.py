"""Thin wrapper over the Anthropic Messages API with tier accounting.

Every call is checked against the shared monthly token budget before it is
sent, and its actual usage is reported both to the budget ledger and to the
per-run usage sink (the run ledger's token counters).
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

import anthropic

from ..errors import ModelCallError

if TYPE_CHECKING:
    from ..ledger.budget import TokenBudgetLedger

logger = logging.getLogger(__name__)


class ModelTier(str, Enum):
    CHEAP = "cheap"
    CAPABLE = "capable"


UsageSink = Callable[[ModelTier, int], None]


@dataclass
class ModelResponse:
    text: str
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def estimate_tokens(prompt: str, max_tokens: int, system: Optional[str] = None) -> int:
    """Rough upper bound for a call: 4 chars per prompt token plus the output cap."""
    chars = len(prompt) + len(system or "")
    return math.ceil(chars / 4) + max_tokens


class LLMClient:
    """Issues single-turn completions for one pipeline run."""

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        max_tokens: int = 1024,
        budget: Optional["TokenBudgetLedger"] = None,
        usage_sink: Optional[UsageSink] = None,
    ) -> None:
        self._client = client
        self.max_tokens = max_tokens
        self._budget = budget
        self._usage_sink = usage_sink

    async def complete(
        self,
        prompt: str,
        *,
        model: str,
        tier: ModelTier,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Send one prompt and return the concatenated text blocks.

        Raises:
            BudgetExceededError: the shared monthly budget cannot cover the call.
            ModelCallError: the provider rejected or failed the request.
        """
        if self._budget is not None:
            self._budget.ensure_available(estimate_tokens(prompt, self.max_tokens, system))

        kwargs = {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        try:
            message = await self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            duration_ms = (time.monotonic() - start) * 1000
            logger.warning(
                "model_call tier=%s model=%s result=failure error=%s duration_ms=%.0f",
                tier.value, model, exc, duration_ms,
            )
            raise ModelCallError(f"{model} call failed: {exc}") from exc

        response = ModelResponse(
            text="".join(
                block.text for block in message.content if getattr(block, "type", None) == "text"
            ),
            input_tokens=message.usage.input_tokens or 0,
            output_tokens=message.usage.output_tokens or 0,
        )
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "model_call tier=%s model=%s result=success tokens=%d duration_ms=%.0f",
            tier.value, model, response.total_tokens, duration_ms,
        )

        if self._usage_sink is not None:
            self._usage_sink(tier, response.total_tokens)
        if self._budget is not None:
            self._budget.record_usage(response.total_tokens)
        return response
