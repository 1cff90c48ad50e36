"""Upstream completion producers.

A producer turns an ordered prompt into an ordered sequence of text deltas.
Closing the returned iterator stops further upstream reads and releases the
upstream connection.

This module is part of the infra layer and must not import from application features.
"""
from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Union

import structlog
from openai import AsyncOpenAI
from pydantic import SecretStr

logger = structlog.get_logger("chat.upstream")


class CompletionProducer(Protocol):
    """Opaque source of ordered text deltas for one completion."""

    def stream(
        self,
        messages: List[Dict[str, str]],
        *,
        model: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[str]:
        ...


class OpenAICompletionProducer:
    """Streams chat completion deltas from the OpenAI API."""

    def __init__(
        self,
        api_key: Union[SecretStr, str, None],
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        if isinstance(api_key, SecretStr):
            api_key = api_key.get_secret_value()
        self._api_key = api_key or None
        self._base_url = base_url or None
        self._timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        # Created lazily so a missing key fails the turn, not app startup
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def stream(
        self,
        messages: List[Dict[str, str]],
        *,
        model: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        logger.info(
            "upstream_stream_open",
            model=model,
            prompt_messages=len(messages),
            params=sorted((params or {}).keys()),
        )
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            stream=True,
            **(params or {}),
        )
        try:
            async for chunk in response:
                # Only the first completion is relayed when n > 1
                choice = next((c for c in chunk.choices if c.index == 0), None)
                if choice is None or choice.delta is None:
                    continue
                if choice.delta.content:
                    yield choice.delta.content
        finally:
            await response.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
