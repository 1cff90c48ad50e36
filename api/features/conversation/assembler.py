"""Builds the ordered upstream prompt from stored conversation state."""
from typing import Dict, List, Optional

from api.features.conversation.entities.message import MessageRole
from api.features.conversation.repository import ConversationStore
from api.shared.utils import is_blank


class ConversationAssembler:
    """Replays a session's history as role/content pairs.

    A system prompt override is an overlay for one call only; it is never
    written to history. Call after the new user turn has been appended so the
    turn is the last entry.
    """

    def __init__(self, store: ConversationStore):
        self.store = store

    async def assemble(
        self, session_id: str, system_prompt: Optional[str] = None
    ) -> List[Dict[str, str]]:
        history = await self.store.list_messages(session_id)
        messages = [{"role": m.role, "content": m.content} for m in history]
        if not is_blank(system_prompt):
            messages.insert(
                0, {"role": MessageRole.SYSTEM.value, "content": system_prompt}
            )
        return messages
