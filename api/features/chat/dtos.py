"""DTOs for the Chat feature."""
from typing import Dict, List, Optional, Union

from pydantic import Field

from api.features.chat.generation import GenerationOptions
from api.shared.dtos import BaseDTO


class ChatRequest(BaseDTO):
    """One user turn plus optional per-request generation controls.

    ``message`` and ``session_id`` are checked by the relay rather than by the
    schema so that a missing field is reported as a 400 with the relay's
    error body.
    """

    message: Optional[str] = Field(default=None, description="User message text")
    session_id: Optional[str] = Field(default=None, description="Target session")
    model: Optional[str] = Field(default=None, description="Upstream model name")
    system_prompt: Optional[str] = Field(
        default=None, description="System turn prepended for this request only"
    )

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop: Optional[Union[str, List[str]]] = None
    n: Optional[int] = None
    logit_bias: Optional[Dict[str, float]] = None
    user: Optional[str] = None
    seed: Optional[int] = None
    logprobs: Optional[bool] = None
    top_logprobs: Optional[int] = None

    def generation_options(self) -> GenerationOptions:
        fields = GenerationOptions.model_fields.keys()
        return GenerationOptions(**{name: getattr(self, name) for name in fields})
