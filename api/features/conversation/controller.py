"""Controller for the Conversation feature."""
import logging
from typing import Optional

from api.features.conversation.dtos import (
    DeleteSessionResponse,
    MessageDTO,
    MessagesResponse,
    SessionDTO,
    SessionListResponse,
)
from api.features.conversation.repository import ConversationStore
from api.shared.exceptions import ChatRelayException, StorageError

logger = logging.getLogger("chat.conversation")


class ConversationController:
    """Controller handling session CRUD and message history reads."""

    def __init__(self, store: ConversationStore):
        self.store = store

    async def create_session(self, *, title: Optional[str]) -> SessionDTO:
        try:
            session = await self.store.create_session(title)
            return SessionDTO.model_validate(session)
        except ChatRelayException:
            raise
        except Exception as e:
            logger.exception("Failed to create session")
            raise StorageError("Failed to create session", {"reason": str(e)})

    async def list_sessions(self) -> SessionListResponse:
        try:
            sessions = await self.store.list_sessions()
        except ChatRelayException:
            raise
        except Exception as e:
            logger.exception("Failed to fetch sessions")
            raise StorageError("Failed to fetch sessions", {"reason": str(e)})
        items = [SessionDTO.model_validate(s) for s in sessions]
        return SessionListResponse(sessions=items, count=len(items))

    async def delete_session(self, *, session_id: str) -> DeleteSessionResponse:
        try:
            await self.store.delete_session(session_id)
        except ChatRelayException:
            raise
        except Exception as e:
            logger.exception("Failed to delete session %s", session_id)
            raise StorageError("Failed to delete session", {"reason": str(e)})
        return DeleteSessionResponse(success=True)

    async def get_messages(self, *, session_id: Optional[str]) -> MessagesResponse:
        try:
            if session_id:
                messages = await self.store.list_messages(session_id)
            else:
                # Legacy mode: every message across sessions
                messages = await self.store.list_all_messages()
        except ChatRelayException:
            raise
        except Exception as e:
            logger.exception("Failed to fetch messages")
            raise StorageError("Failed to fetch messages", {"reason": str(e)})
        items = [MessageDTO.model_validate(m) for m in messages]
        return MessagesResponse(messages=items, count=len(items))
