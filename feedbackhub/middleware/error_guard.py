"""
FeedbackHub – Error guard middleware.

Wraps the API and:
  1. Turns any unhandled exception into a 500 JSON response, so a bad
     request is answered and never takes the process down
  2. Logs the traceback of those failures
  3. Measures response time (X-Response-Time-Ms header)
"""

import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorGuardMiddleware(BaseHTTPMiddleware):
    """Last line of defence for unexpected failures."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error: %s %s", request.method, request.url.path)
            response = JSONResponse(status_code=500, content={"message": "Internal server error"})

        duration_ms = (time.time() - start) * 1000
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.1f}"
        return response
