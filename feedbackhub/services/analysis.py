"""
FeedbackHub – AI analysis of a submission (reply, summary, actions, sentiment).

analyze() never raises: when the provider is disabled, keeps failing, or
returns something malformed, the fixed FALLBACK_ANALYSIS is used instead.
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from feedbackhub.schemas import AnalysisResult, Sentiment
from feedbackhub.services.ai_provider import StructuredCompletion
from feedbackhub.services.retry import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    ProviderCallError,
    Sleep,
    generate_with_retry,
)

logger = logging.getLogger(__name__)

MAX_RECOMMENDED_ACTIONS = 3

ANALYSIS_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "userResponse": {"type": "string", "description": "Response to the user"},
        "summary": {"type": "string", "description": "Brief summary for admin"},
        "recommendedActions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of recommended actions",
        },
        "sentiment": {
            "type": "string",
            "enum": [s.value for s in Sentiment],
            "description": "Sentiment of the review",
        },
    },
    "required": ["userResponse", "summary", "recommendedActions", "sentiment"],
    "additionalProperties": False,
}

FALLBACK_ANALYSIS = AnalysisResult(
    user_response="Thank you for your feedback! We appreciate you taking the time to share your thoughts.",
    summary="AI analysis unavailable at this moment.",
    recommended_actions=["Check API Quota/Connection", "Review logs manually"],
    sentiment=Sentiment.NEUTRAL,
)

PROMPT_TEMPLATE = """You are an AI feedback assistant for a customer feedback system.
A user has submitted a review with the following details:
Rating: {rating} / 5 stars
Review: "{review_text}"

Please perform the following tasks:
1. Write a polite, empathetic, and personalized response to the user (max 50 words).
2. Summarize the review for the admin in one concise sentence.
3. Suggest 3 concrete, actionable steps the business should take based on this specific feedback.
4. Determine the sentiment (Positive, Neutral, or Negative)."""


class AnalysisParseError(ValueError):
    """Provider payload did not match the analysis schema."""


def build_prompt(rating: int, review_text: str) -> str:
    return PROMPT_TEMPLATE.format(rating=rating, review_text=review_text)


def fallback_analysis() -> AnalysisResult:
    """A fresh copy of the fallback, so callers can't mutate the constant."""
    return FALLBACK_ANALYSIS.model_copy(deep=True)


def parse_analysis(payload: dict) -> AnalysisResult:
    try:
        result = AnalysisResult.model_validate(payload)
    except ValidationError as e:
        raise AnalysisParseError(f"Malformed analysis payload: {e.error_count()} error(s)") from e
    if len(result.recommended_actions) > MAX_RECOMMENDED_ACTIONS:
        result.recommended_actions = result.recommended_actions[:MAX_RECOMMENDED_ACTIONS]
    return result


class AnalysisEnricher:
    """Produces an AnalysisResult for a (rating, review text) pair."""

    def __init__(
        self,
        provider: Optional[StructuredCompletion],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        self.provider = provider
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.sleep = sleep

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    async def analyze(self, rating: int, review_text: str) -> AnalysisResult:
        if self.provider is None:
            return fallback_analysis()

        try:
            payload = await generate_with_retry(
                self.provider.generate,
                build_prompt(rating, review_text),
                ANALYSIS_SCHEMA,
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
                sleep=self.sleep,
            )
            if not isinstance(payload, dict):
                raise AnalysisParseError("AI provider returned a non-object payload")
            return parse_analysis(payload)
        except ProviderCallError as e:
            logger.error("AI analysis failed after %d attempt(s), using fallback: %s", e.attempts, e)
        except ValueError as e:
            logger.error("AI analysis unusable, using fallback: %s", e)
        except Exception:
            logger.exception("Unexpected AI analysis error, using fallback")
        return fallback_analysis()
