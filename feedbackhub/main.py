"""
FeedbackHub - Main FastAPI application entry point.

Serves the feedback API used by the public submission form and the
internal analytics dashboard.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feedbackhub.config import get_settings
from feedbackhub.middleware.error_guard import ErrorGuardMiddleware
from feedbackhub.routers import feedback
from feedbackhub.services.ai_provider import build_provider
from feedbackhub.services.analysis import AnalysisEnricher
from feedbackhub.services.feedback_service import FeedbackService
from feedbackhub.services.store import connect_store

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown events."""
    logger.info("FeedbackHub starting...")
    current = get_settings()
    store = await connect_store(current)
    enricher = AnalysisEnricher(
        build_provider(current),
        max_attempts=current.AI_MAX_ATTEMPTS,
        initial_delay=current.AI_INITIAL_DELAY,
    )
    app.state.store = store
    app.state.feedback_service = FeedbackService(store, enricher)
    logger.info("Storage backend: %s, AI analysis: %s", store.backend, "on" if enricher.enabled else "off")
    yield
    await store.close()
    logger.info("FeedbackHub shutting down")


app = FastAPI(
    title="FeedbackHub",
    description="Customer feedback collection with AI-assisted analysis",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Error guard sits inside CORS so 500 responses still carry CORS headers
app.add_middleware(ErrorGuardMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Invalid request bodies are a 400 with a readable message."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"message": "; ".join(parts) or "Invalid request"})


# API routers
app.include_router(feedback.router)


@app.get("/health")
async def health(request: Request):
    """Lightweight health check (for Docker, load balancers, uptime monitors)."""
    service: FeedbackService = request.app.state.feedback_service
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "storage": service.store.backend,
        "aiConfigured": service.enricher.enabled,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("feedbackhub.main:app", host="0.0.0.0", port=5000, reload=True)
