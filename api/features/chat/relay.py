"""Streaming relay: one user turn in, one framed completion stream out.

A relay instance handles exactly one turn and walks these states::

    VALIDATING -> HISTORY_PREPARED -> UPSTREAM_STREAMING -> COMMITTING -> COMPLETED
         \\               \\                   \\                  \\
          +---------------+-------------------+------------------+--> FAILED

``prepare`` covers the synchronous phase. Its failures are raised to the
caller because no streaming transport exists yet. ``stream`` runs once the
caller has committed to an event stream; from then on every failure becomes
an in-band error frame and the stream always ends with a terminal frame.

The user turn is persisted before the prompt is assembled, so the prompt
includes it. The assistant turn is persisted only when the upstream stream
ends normally; partial output is discarded on failure or disconnect.

Concurrent turns on the same session are not serialised. Their appends may
interleave and each prompt may include the other's user turn.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import structlog

from api.features.chat.dtos import ChatRequest
from api.features.chat.frames import content_frame, done_frame, error_frame
from api.features.conversation.assembler import ConversationAssembler
from api.features.conversation.entities.message import ChatMessage, MessageRole
from api.features.conversation.exceptions import SessionNotFoundError
from api.features.conversation.repository import ConversationStore
from api.shared.exceptions import UpstreamError, ValidationError
from api.shared.utils import ensure_utc, is_blank
from infra.completions import CompletionProducer

logger = structlog.get_logger("chat.relay")

UPSTREAM_FAILURE = "Failed to process message"
COMMIT_FAILURE = "Failed to save response"


class RelayState(str, Enum):
    VALIDATING = "validating"
    HISTORY_PREPARED = "history_prepared"
    UPSTREAM_STREAMING = "upstream_streaming"
    COMMITTING = "committing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PreparedTurn:
    """Everything the streaming phase needs, computed before the transport opens."""

    session_id: str
    model: str
    messages: List[Dict[str, str]]
    user_message: ChatMessage
    params: Dict[str, Any] = field(default_factory=dict)


class StreamRelay:
    """Relays one chat turn between the conversation store and the upstream producer."""

    def __init__(
        self,
        store: ConversationStore,
        assembler: ConversationAssembler,
        producer: CompletionProducer,
        default_model: str,
        idle_timeout: float = 60.0,
    ):
        self.store = store
        self.assembler = assembler
        self.producer = producer
        self.default_model = default_model
        self.idle_timeout = idle_timeout
        self.state = RelayState.VALIDATING
        self._parts: List[str] = []
        self._log = logger

    @property
    def accumulated(self) -> str:
        return "".join(self._parts)

    def _transition(self, state: RelayState, **details: Any) -> None:
        self._log.info(
            "relay_transition", from_state=self.state.value, to_state=state.value, **details
        )
        self.state = state

    async def prepare(self, request: ChatRequest) -> PreparedTurn:
        """Validate the turn, persist the user message and assemble the prompt."""
        if self.state is not RelayState.VALIDATING:
            raise RuntimeError(f"Relay already used (state={self.state.value})")

        try:
            if is_blank(request.message):
                raise ValidationError("Message is required")
            if is_blank(request.session_id):
                raise ValidationError("Session ID is required")

            session_id = request.session_id
            self._log = logger.bind(session_id=session_id)
            if await self.store.get_session(session_id) is None:
                raise SessionNotFoundError(session_id)

            user_message = await self.store.append_message(
                session_id, MessageRole.USER, request.message
            )
            messages = await self.assembler.assemble(session_id, request.system_prompt)
            params = request.generation_options().to_upstream_params()
        except Exception as e:
            self._transition(RelayState.FAILED, phase="prepare", error=str(e))
            raise

        model = request.model or self.default_model
        self._transition(
            RelayState.HISTORY_PREPARED,
            model=model,
            prompt_messages=len(messages),
            params=sorted(params),
        )
        return PreparedTurn(
            session_id=session_id,
            model=model,
            messages=messages,
            user_message=user_message,
            params=params,
        )

    async def stream(
        self,
        turn: PreparedTurn,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """Yield wire frames for the prepared turn.

        The next upstream delta is requested only after the previous frame has
        been handed to (and written by) the transport.
        """
        if self.state is not RelayState.HISTORY_PREPARED:
            raise RuntimeError(f"Relay not prepared (state={self.state.value})")

        self._transition(RelayState.UPSTREAM_STREAMING)
        upstream = self.producer.stream(turn.messages, model=turn.model, params=turn.params)
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    self._transition(
                        RelayState.FAILED,
                        reason="client_disconnected",
                        discarded_chars=len(self.accumulated),
                    )
                    return
                try:
                    delta = await asyncio.wait_for(
                        upstream.__anext__(), timeout=self.idle_timeout
                    )
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError:
                    raise UpstreamError(
                        f"No upstream output for {self.idle_timeout:g}s",
                        {"idle_timeout": self.idle_timeout},
                    )
                if not delta:
                    continue
                self._parts.append(delta)
                yield content_frame(delta)
        except (asyncio.CancelledError, GeneratorExit):
            self._transition(
                RelayState.FAILED,
                reason="transport_closed",
                discarded_chars=len(self.accumulated),
            )
            raise
        except Exception as e:
            self._log.exception("upstream_stream_failed")
            self._transition(
                RelayState.FAILED,
                reason="upstream_error",
                discarded_chars=len(self.accumulated),
            )
            yield error_frame(UPSTREAM_FAILURE, str(e))
            return
        finally:
            await self._close_upstream(upstream)

        self._transition(RelayState.COMMITTING, chars=len(self.accumulated))
        try:
            assistant_message = await self.store.append_message(
                turn.session_id, MessageRole.ASSISTANT, self.accumulated
            )
        except Exception as e:
            self._log.exception("assistant_commit_failed")
            self._transition(RelayState.FAILED, reason="commit_error")
            yield error_frame(COMMIT_FAILURE, str(e))
            return

        self._transition(RelayState.COMPLETED, message_id=assistant_message.id)
        yield done_frame(ensure_utc(assistant_message.timestamp))

    async def _close_upstream(self, upstream: AsyncIterator[str]) -> None:
        aclose = getattr(upstream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            self._log.warning("upstream_close_failed", error=str(e))
