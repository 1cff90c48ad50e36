"""Router for the Conversation feature."""
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from api.features.conversation.controller import ConversationController
from api.features.conversation.dtos import (
    CreateSessionRequest,
    DeleteSessionResponse,
    MessagesResponse,
    SessionDTO,
    SessionListResponse,
)
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post("/sessions", response_model=SessionDTO)
@inject
async def create_session(
    request: Optional[CreateSessionRequest] = None,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
):
    """Create a session; the title defaults to a placeholder when omitted."""
    return await controller.create_session(title=request.title if request else None)


@router.get("/sessions", response_model=SessionListResponse)
@inject
async def list_sessions(
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
):
    """List sessions, most recently active first."""
    return await controller.list_sessions()


@router.delete("/sessions/{session_id}", response_model=DeleteSessionResponse)
@inject
async def delete_session(
    session_id: str,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
):
    """Delete a session and its messages. Deleting a missing session succeeds."""
    return await controller.delete_session(session_id=session_id)


@router.get("/messages", response_model=MessagesResponse)
@inject
async def get_messages(
    session_id: Optional[str] = Query(
        None, alias="sessionId", description="Session to read; omit for all messages"
    ),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
):
    """Conversation history in replay order."""
    return await controller.get_messages(session_id=session_id)
