"""DTOs for the Conversation feature."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from api.shared.dtos import BaseDTO
from api.shared.utils import ensure_utc


class CreateSessionRequest(BaseDTO):
    """Request to create a session."""

    title: Optional[str] = Field(default=None, description="Session title")


class SessionDTO(BaseDTO):
    """Session DTO."""

    id: str = Field(description="Session identifier")
    title: str = Field(description="Session title")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last activity timestamp")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SessionListResponse(BaseDTO):
    """List sessions response, most recently active first."""

    sessions: List[SessionDTO] = Field(description="Sessions")
    count: int = Field(description="Number of sessions returned")


class DeleteSessionResponse(BaseDTO):
    success: bool = Field(default=True)


class MessageDTO(BaseDTO):
    """Conversation message DTO."""

    id: int = Field(description="Message sequence number")
    session_id: str = Field(description="Owning session")
    role: str = Field(description="Message role: system, user or assistant")
    content: str = Field(description="Message content")
    timestamp: datetime = Field(description="Message timestamp")

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class MessagesResponse(BaseDTO):
    """Messages list response."""

    messages: List[MessageDTO] = Field(description="Messages in chronological order")
    count: int = Field(description="Number of messages returned")
