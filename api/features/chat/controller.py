"""Controller for the Chat feature."""
import logging
from typing import Awaitable, Callable, Optional

from fastapi.responses import StreamingResponse

from api.features.chat.dtos import ChatRequest
from api.features.chat.frames import MEDIA_TYPE
from api.features.chat.relay import StreamRelay
from api.shared.exceptions import ChatRelayException, StorageError

logger = logging.getLogger("chat.chat")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Keep reverse proxies from buffering frames
    "X-Accel-Buffering": "no",
}


class ChatController:
    """Turns a chat request into a framed event stream."""

    def __init__(self, relay: StreamRelay):
        self.relay = relay

    async def start_turn(
        self,
        request: ChatRequest,
        *,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> StreamingResponse:
        try:
            turn = await self.relay.prepare(request)
        except ChatRelayException as e:
            logger.warning("Chat request rejected: %s", e.message)
            raise
        except Exception as e:
            logger.exception("Failed to prepare chat turn")
            raise StorageError("Failed to process message", {"reason": str(e)})

        logger.info(
            "[Chat API] Using model: %s for session: %s", turn.model, turn.session_id
        )
        return StreamingResponse(
            self.relay.stream(turn, is_disconnected=is_disconnected),
            media_type=MEDIA_TYPE,
            headers=STREAM_HEADERS,
        )
