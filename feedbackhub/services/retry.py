"""
FeedbackHub – Bounded exponential-backoff retry around a provider call.

Rate limiting (429) and temporary unavailability (503) are retried after
`initial_delay * 2**attempt` seconds (1s, 2s, 4s ... at defaults). Any other
error, or a transient error on the last attempt, is raised as
ProviderCallError.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 503})

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds

ProviderCall = Callable[[str, dict], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class ProviderCallError(Exception):
    """The provider call failed for good (fatal error or retries exhausted)."""

    def __init__(self, message: str, attempts: int, status_code: Optional[int] = None, transient: bool = False):
        super().__init__(message)
        self.attempts = attempts
        self.status_code = status_code
        self.transient = transient


def status_code_of(exc: BaseException) -> Optional[int]:
    """HTTP status carried by a provider exception (openai.APIStatusError has `status_code`)."""
    code = getattr(exc, "status_code", None)
    if code is None:
        code = getattr(exc, "status", None)
    return code if isinstance(code, int) else None


def is_transient(exc: BaseException) -> bool:
    return status_code_of(exc) in TRANSIENT_STATUS_CODES


def backoff_delay(attempt_index: int, initial_delay: float = DEFAULT_INITIAL_DELAY) -> float:
    """Delay before retrying after the attempt with the given 0-based index."""
    return initial_delay * (2 ** attempt_index)


async def generate_with_retry(
    call: ProviderCall,
    prompt: str,
    schema: dict,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Run `call(prompt, schema)` with bounded retries.

    Returns whatever the call returns on its first success.

    Raises:
        ProviderCallError: on a fatal error, or when the final attempt fails.
        ValueError: if max_attempts < 1.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts):
        try:
            return await call(prompt, schema)
        except Exception as e:
            status = status_code_of(e)
            transient = is_transient(e)
            last_attempt = attempt == max_attempts - 1

            if transient and not last_attempt:
                delay = backoff_delay(attempt, initial_delay)
                logger.warning(
                    "AI provider busy (status %s), retrying in %.1fs (attempt %d/%d)",
                    status, delay, attempt + 1, max_attempts,
                )
                await sleep(delay)
                continue

            logger.error(
                "AI generation failed (attempt %d/%d, status %s): %s",
                attempt + 1, max_attempts, status, e,
            )
            raise ProviderCallError(
                str(e) or e.__class__.__name__,
                attempts=attempt + 1,
                status_code=status,
                transient=transient,
            ) from e
