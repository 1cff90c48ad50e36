"""Conversation store: durable mapping from session to ordered messages."""
from __future__ import annotations

from typing import List, Optional, Union

import structlog
from sqlalchemy import delete, select

from api.features.conversation.entities.message import ChatMessage, MessageRole
from api.features.conversation.entities.session import ChatSession
from api.features.conversation.exceptions import InvalidRoleError, SessionNotFoundError
from api.shared.base import BaseRepository
from api.shared.utils import ensure_utc, generate_session_id, is_blank, utcnow
from infra.resources import DatabaseResource

logger = structlog.get_logger("chat.conversation.store")


class ConversationStore(BaseRepository):
    """Sessions and their append-only message history.

    Constructed once per process and shared by every request.
    """

    def __init__(self, database: DatabaseResource, default_title: str = "New Chat"):
        super().__init__(database)
        self.default_title = default_title

    async def create_session(self, title: Optional[str] = None) -> ChatSession:
        now = utcnow()
        entity = ChatSession(
            id=generate_session_id(),
            title=self.default_title if is_blank(title) else title,
            created_at=now,
            updated_at=now,
        )
        async with self.session_scope("create session") as session:
            session.add(entity)
            await session.commit()
        logger.info("session_created", session_id=entity.id)
        return entity

    async def list_sessions(self) -> List[ChatSession]:
        """Most recently active first."""
        stmt = select(ChatSession).order_by(
            ChatSession.updated_at.desc(),
            ChatSession.created_at.desc(),
            ChatSession.id.desc(),
        )
        async with self.session_scope("fetch sessions") as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        async with self.session_scope("fetch session") as session:
            return await session.get(ChatSession, session_id)

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session with all of its messages. Missing ids are a no-op."""
        async with self.session_scope("delete session") as session:
            await session.execute(
                delete(ChatMessage).where(ChatMessage.session_id == session_id)
            )
            result = await session.execute(
                delete(ChatSession).where(ChatSession.id == session_id)
            )
            await session.commit()
        deleted = result.rowcount > 0
        logger.info("session_deleted", session_id=session_id, existed=deleted)
        return deleted

    async def append_message(
        self, session_id: str, role: Union[MessageRole, str], content: str
    ) -> ChatMessage:
        """Insert a message and bump the session's ``updated_at`` in one commit."""
        try:
            role_value = MessageRole(role).value
        except ValueError:
            raise InvalidRoleError(str(role))

        async with self.session_scope("save message") as session:
            chat_session = await session.get(ChatSession, session_id)
            if chat_session is None:
                raise SessionNotFoundError(session_id)

            # Never earlier than the session's last activity, so per-session
            # timestamps stay non-decreasing and updated_at bounds them all.
            timestamp = max(utcnow(), ensure_utc(chat_session.updated_at))
            message = ChatMessage(
                session_id=session_id,
                role=role_value,
                content=content,
                timestamp=timestamp,
            )
            session.add(message)
            chat_session.updated_at = timestamp
            await session.commit()

        logger.debug(
            "message_appended",
            session_id=session_id,
            message_id=message.id,
            role=role_value,
        )
        return message

    async def list_messages(self, session_id: str) -> List[ChatMessage]:
        """Messages of one session in replay order."""
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc())
        )
        async with self.session_scope("fetch messages") as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_all_messages(self) -> List[ChatMessage]:
        """Messages across every session, oldest first."""
        stmt = select(ChatMessage).order_by(
            ChatMessage.timestamp.asc(), ChatMessage.id.asc()
        )
        async with self.session_scope("fetch messages") as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
