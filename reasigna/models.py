from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from reasigna.db import Base

DOCUMENT_ID = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateDocument(Base):
    """Whole application state kept as a single JSON row."""

    __tablename__ = "state_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
