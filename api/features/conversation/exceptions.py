"""Exceptions for the Conversation feature."""
from api.shared.exceptions import NotFoundError, ValidationError


class SessionNotFoundError(NotFoundError):
    """Raised when a session id does not resolve to a stored session."""

    def __init__(self, session_id: str):
        super().__init__("Session", session_id)
        self.error_code = "SESSION_NOT_FOUND"


class InvalidRoleError(ValidationError):
    """Raised when a message role is not one of system, user, assistant."""

    def __init__(self, role: str):
        super().__init__(f"Invalid message role '{role}'", {"role": role})
