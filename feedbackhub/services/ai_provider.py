"""
FeedbackHub – Structured completion provider (OpenAI SDK) with token usage logging.

The rest of the app only depends on the StructuredCompletion protocol, so the
provider can be swapped or mocked. Setting AI_BASE_URL points the same client
at any OpenAI-compatible endpoint (e.g. Gemini's).
"""

import json
import logging
from typing import Optional, Protocol

from openai import AsyncOpenAI

from feedbackhub.config import Settings

logger = logging.getLogger(__name__)

# ── Pricing per 1M tokens (USD) ──────────────────────────────
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o": {
        "prompt": 2.50,
        "completion": 10.00,
    },
    "gpt-4o-mini": {
        "prompt": 0.15,
        "completion": 0.60,
    },
}

DEFAULT_MODEL = "gpt-4o-mini"
SCHEMA_NAME = "feedback_analysis"


class StructuredCompletion(Protocol):
    """Generate a JSON object matching `schema` from `prompt`."""

    async def generate(self, prompt: str, schema: dict) -> dict: ...


def calculate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Cost in USD for the given token counts (default model pricing if unknown)."""
    pricing = MODEL_PRICING.get(model, MODEL_PRICING[DEFAULT_MODEL])
    return (prompt_tokens / 1_000_000) * pricing["prompt"] + (
        completion_tokens / 1_000_000
    ) * pricing["completion"]


def strip_code_fence(content: str) -> str:
    """Strip a Markdown code block some models wrap around JSON output."""
    content = content.strip()
    if content.startswith("```"):
        # Remove first line (```json or ```)
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]
    if content.endswith("```"):
        content = content.rsplit("```", 1)[0]
    return content.strip()


class OpenAIStructuredCompletion:
    """StructuredCompletion backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        timeout: float = 20.0,
    ):
        if not api_key:
            raise ValueError("AI provider API key not configured")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url or None
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            # Retries are handled by generate_with_retry, not the SDK
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
            logger.info("AI client ready (model=%s)", self.model)
        return self._client

    async def generate(self, prompt: str, schema: dict) -> dict:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": SCHEMA_NAME, "schema": schema, "strict": True},
            },
            temperature=0.4,
        )

        usage = response.usage
        if usage:
            logger.info(
                "AI usage: model=%s, prompt=%d, completion=%d, cost=$%.6f",
                self.model,
                usage.prompt_tokens,
                usage.completion_tokens,
                calculate_cost(self.model, usage.prompt_tokens, usage.completion_tokens),
            )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("AI provider returned an empty response")
        payload = json.loads(strip_code_fence(content))
        if not isinstance(payload, dict):
            raise ValueError("AI provider returned a non-object payload")
        return payload


def build_provider(settings: Settings) -> Optional[StructuredCompletion]:
    """Provider for the configured credential, or None when AI is disabled."""
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is missing. AI analysis will be disabled.")
        return None
    return OpenAIStructuredCompletion(
        api_key=settings.OPENAI_API_KEY,
        model=settings.AI_MODEL,
        base_url=settings.AI_BASE_URL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
