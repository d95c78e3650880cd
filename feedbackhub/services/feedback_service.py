"""
FeedbackHub – Feedback service: enrich, persist, list, patch, aggregate.
"""

import logging
import time
import uuid
from typing import Any, Callable, Optional

from feedbackhub.schemas import (
    AnalysisResult,
    FeedbackStats,
    HelpfulTally,
    RatingCount,
    Sentiment,
    Submission,
)
from feedbackhub.services.analysis import AnalysisEnricher
from feedbackhub.services.store import SubmissionStore

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class FeedbackService:
    def __init__(
        self,
        store: SubmissionStore,
        enricher: AnalysisEnricher,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.store = store
        self.enricher = enricher
        self.clock = clock
        self.id_factory = id_factory

    async def submit(
        self,
        rating: int,
        review_text: str,
        ai_analysis: Optional[AnalysisResult] = None,
    ) -> Submission:
        """Enrich (unless the client sent its own analysis) and persist a submission."""
        if ai_analysis is None:
            ai_analysis = await self.enricher.analyze(rating, review_text)

        # id and timestamp are assigned after enrichment, at persist time
        submission = Submission(
            id=self.id_factory(),
            rating=rating,
            review_text=review_text,
            timestamp=self.clock(),
            ai_analysis=ai_analysis,
            helpful_response=None,
        )
        stored = await self.store.insert(submission)
        logger.info(
            "Stored submission %s (rating=%d, sentiment=%s)",
            stored.id, stored.rating, stored.ai_analysis.sentiment.value,
        )
        return stored

    async def list(
        self,
        search: Optional[str] = None,
        rating: Optional[int] = None,
        sentiment: Optional[Sentiment] = None,
    ) -> list[Submission]:
        """Newest first, optionally narrowed like the dashboard filters.

        `search` matches the review text or the AI summary, case-insensitively.
        """
        submissions = await self.store.list_all()
        term = search.strip().lower() if search else ""

        if term:
            submissions = [
                s for s in submissions
                if term in s.review_text.lower() or term in s.ai_analysis.summary.lower()
            ]
        if rating is not None:
            submissions = [s for s in submissions if s.rating == rating]
        if sentiment is not None:
            submissions = [s for s in submissions if s.ai_analysis.sentiment == sentiment]
        return submissions

    async def patch(self, submission_id: str, fields: dict[str, Any]) -> Optional[Submission]:
        updated = await self.store.update_partial(submission_id, fields)
        if updated is None:
            logger.info("Patch for unknown submission %s", submission_id)
        return updated

    async def stats(self) -> FeedbackStats:
        """Aggregate figures for the admin dashboard."""
        submissions = await self.store.list_all()
        total = len(submissions)

        sentiments = {s.value: 0 for s in Sentiment}
        ratings = {r: 0 for r in range(1, 6)}
        helpful = HelpfulTally()

        for sub in submissions:
            sentiments[sub.ai_analysis.sentiment.value] += 1
            if sub.rating in ratings:
                ratings[sub.rating] += 1
            if sub.helpful_response is True:
                helpful.helpful += 1
            elif sub.helpful_response is False:
                helpful.not_helpful += 1
            else:
                helpful.unanswered += 1

        average = round(sum(s.rating for s in submissions) / total, 1) if total else 0.0

        return FeedbackStats(
            total_reviews=total,
            average_rating=average,
            sentiment_distribution=sentiments,
            rating_distribution=[RatingCount(rating=r, count=c) for r, c in ratings.items()],
            helpful_votes=helpful,
        )
