"""
FeedbackHub – Feedback routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from feedbackhub.schemas import FeedbackStats, Sentiment, Submission, SubmissionCreate, SubmissionPatch
from feedbackhub.services.feedback_service import FeedbackService
from feedbackhub.services.store import SubmissionStoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def get_feedback_service(request: Request) -> FeedbackService:
    """FastAPI dependency: the service built at startup."""
    return request.app.state.feedback_service


@router.get("", response_model=list[Submission])
async def list_feedback(
    search: Optional[str] = Query(None, description="Match review text or AI summary (case-insensitive)"),
    rating: Optional[int] = Query(None, ge=1, le=5, description="Exact star rating"),
    sentiment: Optional[Sentiment] = Query(None, description="Positive, Neutral or Negative"),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Submissions, newest first, optionally filtered."""
    try:
        return await service.list(search=search, rating=rating, sentiment=sentiment)
    except SubmissionStoreError as e:
        logger.error("Listing failed: %s", e)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))


@router.post("", response_model=Submission, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    req: SubmissionCreate,
    service: FeedbackService = Depends(get_feedback_service),
):
    """Submit a rating + review. AI analysis failures never block the submission."""
    try:
        return await service.submit(req.rating, req.review_text, req.ai_analysis)
    except SubmissionStoreError as e:
        logger.error("Submission error: %s", e)
        return _error(status.HTTP_400_BAD_REQUEST, str(e))


@router.get("/stats", response_model=FeedbackStats)
async def feedback_stats(service: FeedbackService = Depends(get_feedback_service)):
    """Dashboard aggregates (average rating, sentiment and rating distribution)."""
    try:
        return await service.stats()
    except SubmissionStoreError as e:
        logger.error("Stats failed: %s", e)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))


@router.patch("/{submission_id}", response_model=Submission)
async def patch_feedback(
    submission_id: str,
    req: SubmissionPatch,
    service: FeedbackService = Depends(get_feedback_service),
):
    """Record whether the AI response was helpful."""
    try:
        updated = await service.patch(submission_id, req.model_dump(exclude_unset=True))
    except SubmissionStoreError as e:
        logger.error("Update error: %s", e)
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    if updated is None:
        return _error(status.HTTP_404_NOT_FOUND, "Not found")
    return updated
