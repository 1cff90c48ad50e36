"""Shared DTOs for the chat relay API."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from api.shared.utils import utcnow


class BaseDTO(BaseModel):
    """Base DTO: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""

    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=utcnow)


class ErrorResponse(BaseDTO):
    """Error body returned by every non-streaming endpoint."""

    error: str = Field(description="Error message")
    details: Optional[Any] = Field(default=None, description="Additional error details")

    def to_content(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
