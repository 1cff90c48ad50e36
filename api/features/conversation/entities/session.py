"""Chat session entity."""
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity
from api.shared.utils import generate_session_id, utcnow


class ChatSession(BaseEntity):
    """A named, independently ordered conversation thread."""

    __tablename__ = "chat_session"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=generate_session_id
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Bumped on every message append; sort key for recency ordering
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
