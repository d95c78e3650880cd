"""
FeedbackHub – Request / response models.

Python attributes are snake_case; the JSON wire format is camelCase
(`reviewText`, `aiAnalysis`, `helpfulResponse`, ...).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"


class AnalysisResult(CamelModel):
    """Structured AI output attached to every submission."""

    user_response: str
    summary: str
    recommended_actions: list[str]
    sentiment: Sentiment


class Submission(CamelModel):
    id: str
    rating: int
    review_text: str
    timestamp: int  # ms since epoch, assigned server-side
    ai_analysis: AnalysisResult
    helpful_response: Optional[bool] = None


class SubmissionCreate(CamelModel):
    """POST /api/feedback body."""

    rating: int = Field(..., ge=1, le=5, strict=True)
    review_text: str
    ai_analysis: Optional[AnalysisResult] = None

    @field_validator("review_text")
    @classmethod
    def review_text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reviewText must not be empty")
        return value


class SubmissionPatch(CamelModel):
    """PATCH /api/feedback/{id} body. Only the helpful-vote may be changed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    helpful_response: Optional[bool] = Field(..., strict=True)


class RatingCount(CamelModel):
    rating: int
    count: int


class HelpfulTally(CamelModel):
    helpful: int = 0
    not_helpful: int = 0
    unanswered: int = 0


class FeedbackStats(CamelModel):
    total_reviews: int
    average_rating: float
    sentiment_distribution: dict[str, int]
    rating_distribution: list[RatingCount]
    helpful_votes: HelpfulTally
