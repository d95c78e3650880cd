"""
FeedbackHub – Submission storage.

Two interchangeable backends behind one API:
  * SqlSubmissionStore    – durable, async SQLAlchemy (DATABASE_URL)
  * InMemorySubmissionStore – process-local list, lost on restart

connect_store() picks one once at startup; the handle is never swapped
while the process runs.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from feedbackhub.config import Settings
from feedbackhub.database import init_db, make_engine, make_sessionmaker
from feedbackhub.models.submission import SubmissionRecord
from feedbackhub.schemas import Submission

logger = logging.getLogger(__name__)


class SubmissionStoreError(Exception):
    """A storage backend failed to complete an operation."""


class SubmissionStore(ABC):
    backend: str = "unknown"

    @abstractmethod
    async def insert(self, submission: Submission) -> Submission:
        ...

    @abstractmethod
    async def list_all(self) -> list[Submission]:
        """All submissions, newest (highest timestamp) first."""

    @abstractmethod
    async def update_partial(self, submission_id: str, fields: dict[str, Any]) -> Optional[Submission]:
        """Shallow-merge `fields` into the submission. None if the id is unknown."""

    async def close(self):
        pass


class InMemorySubmissionStore(SubmissionStore):
    backend = "memory"

    def __init__(self):
        self._items: list[Submission] = []

    async def insert(self, submission: Submission) -> Submission:
        # Callers only ever get copies, so they can't edit stored records in place
        self._items.append(submission.model_copy(deep=True))
        return submission.model_copy(deep=True)

    async def list_all(self) -> list[Submission]:
        # Ties keep the most recently inserted first, like the database ordering
        ordered = sorted(reversed(self._items), key=lambda s: s.timestamp, reverse=True)
        return [s.model_copy(deep=True) for s in ordered]

    async def update_partial(self, submission_id: str, fields: dict[str, Any]) -> Optional[Submission]:
        for index, existing in enumerate(self._items):
            if existing.id == submission_id:
                # Round-trip through validation so merged fields keep their types
                merged = Submission.model_validate({**existing.model_dump(), **fields})
                self._items[index] = merged
                return merged.model_copy(deep=True)
        return None


def _to_columns(submission: Submission) -> dict[str, Any]:
    data = submission.model_dump(mode="json")
    # Stored analysis keeps the camelCase wire shape
    data["ai_analysis"] = submission.ai_analysis.model_dump(mode="json", by_alias=True)
    return data


def _to_submission(record: SubmissionRecord) -> Submission:
    return Submission(
        id=record.id,
        rating=record.rating,
        review_text=record.review_text,
        timestamp=record.timestamp,
        ai_analysis=record.ai_analysis,
        helpful_response=record.helpful_response,
    )


class SqlSubmissionStore(SubmissionStore):
    backend = "database"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = make_sessionmaker(engine)

    async def insert(self, submission: Submission) -> Submission:
        record = SubmissionRecord(**_to_columns(submission))
        try:
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
        except SQLAlchemyError as e:
            raise SubmissionStoreError(f"Failed to save submission: {e}") from e
        return _to_submission(record)

    async def list_all(self) -> list[Submission]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(SubmissionRecord).order_by(
                        SubmissionRecord.timestamp.desc(), SubmissionRecord.pk.desc()
                    )
                )
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise SubmissionStoreError(f"Failed to load submissions: {e}") from e
        return [_to_submission(r) for r in records]

    async def update_partial(self, submission_id: str, fields: dict[str, Any]) -> Optional[Submission]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(SubmissionRecord).where(SubmissionRecord.id == submission_id)
                )
                record = result.scalar_one_or_none()
                if record is None:
                    return None

                current = _to_submission(record)
                merged = Submission.model_validate({**current.model_dump(), **fields})
                for key, value in _to_columns(merged).items():
                    setattr(record, key, value)
                await session.commit()
        except SQLAlchemyError as e:
            raise SubmissionStoreError(f"Failed to update submission: {e}") from e
        return merged

    async def close(self):
        await self.engine.dispose()


async def connect_store(settings: Settings) -> SubmissionStore:
    """Select the storage backend for this process.

    Falls back to memory when no DATABASE_URL is set or the connection fails.
    """
    if not settings.DATABASE_URL:
        logger.warning("DATABASE_URL is not defined. Using in-memory storage.")
        return InMemorySubmissionStore()

    engine = None
    try:
        engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        await asyncio.wait_for(init_db(engine), timeout=settings.DATABASE_CONNECT_TIMEOUT)
    except Exception as e:
        logger.error("Database connection error: %s", e)
        logger.warning("Falling back to in-memory storage")
        if engine is not None:
            await engine.dispose()
        return InMemorySubmissionStore()

    logger.info("Connected to database")
    return SqlSubmissionStore(engine)
