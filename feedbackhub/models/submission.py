"""Submission model (durable backend)."""

from sqlalchemy import BigInteger, Boolean, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from feedbackhub.database import Base


class SubmissionRecord(Base):
    __tablename__ = "submissions"

    # Surrogate key; clients only ever see the application-level `id`
    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)  # ms since epoch
    ai_analysis: Mapped[dict] = mapped_column(JSON, nullable=False)
    helpful_response: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=None)
