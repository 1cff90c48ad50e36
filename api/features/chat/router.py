"""Router for the Chat feature."""
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Request

from api.features.chat.controller import ChatController
from api.features.chat.dtos import ChatRequest
from api.shared.dtos import ErrorResponse
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post(
    "/chat",
    responses={
        200: {"content": {"text/event-stream": {}}, "description": "Framed event stream"},
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@inject
async def chat(
    request: ChatRequest,
    http_request: Request,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
):
    """Relay one user turn and stream the assistant's reply as it is generated."""
    return await controller.start_turn(
        request, is_disconnected=http_request.is_disconnected
    )
