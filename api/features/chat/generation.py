"""Generation controls forwarded to the upstream completion producer.

Every recognised option is enumerated here. Options left unset are omitted
from the upstream request so the provider's own defaults apply; the relay
never substitutes local defaults.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from api.shared.dtos import BaseDTO


class GenerationOptions(BaseDTO):
    """Sampling and output controls for one completion."""

    temperature: Optional[float] = Field(
        default=None, description="Sampling randomness, 0-2; higher is more random"
    )
    max_tokens: Optional[int] = Field(
        default=None, description="Upper bound on generated tokens"
    )
    top_p: Optional[float] = Field(
        default=None, description="Nucleus sampling threshold, 0-1"
    )
    frequency_penalty: Optional[float] = Field(
        default=None,
        description="-2 to 2; positive values penalise tokens by their frequency so far",
    )
    presence_penalty: Optional[float] = Field(
        default=None,
        description="-2 to 2; positive values penalise tokens that already appeared",
    )
    stop: Optional[Union[str, List[str]]] = Field(
        default=None, description="Sequence(s) at which generation stops"
    )
    n: Optional[int] = Field(
        default=None, description="Completions requested; only the first is relayed"
    )
    logit_bias: Optional[Dict[str, float]] = Field(
        default=None, description="Token id to bias (-100 to 100) map"
    )
    user: Optional[str] = Field(
        default=None, description="Opaque end-user identifier for abuse monitoring"
    )
    seed: Optional[int] = Field(
        default=None, description="Best-effort deterministic sampling seed"
    )
    logprobs: Optional[bool] = Field(
        default=None, description="Return log probabilities of output tokens"
    )
    top_logprobs: Optional[int] = Field(
        default=None, description="Most likely alternatives per position (needs logprobs)"
    )

    def to_upstream_params(self) -> Dict[str, Any]:
        """Upstream keyword arguments for the options that were supplied."""
        params: Dict[str, Any] = {}
        for name in (
            "temperature",
            "max_tokens",
            "top_p",
            "frequency_penalty",
            "presence_penalty",
            "n",
            "seed",
            "logprobs",
            "top_logprobs",
        ):
            value = getattr(self, name)
            if value is not None:
                params[name] = value
        # Empty containers and blank strings count as absent
        if self.stop:
            params["stop"] = self.stop
        if self.logit_bias:
            params["logit_bias"] = self.logit_bias
        if self.user:
            params["user"] = self.user
        return params
