"""
OpenAI-compatible chat client.

Works with any provider exposing the Chat Completions API (OpenAI, OpenRouter, self-hosted
gateways).  The API key is always passed explicitly from :class:`~runmesh.config.ClientConfig`;
the SDK never falls back to process environment lookups here.
"""

import logging
from typing import (
    Any,
    AsyncIterator,
    Optional,
)

import httpx
import openai

from runmesh.client.base import (
    ChatClient,
    register_client,
)
from runmesh.config import ClientConfig
from runmesh.core.errors import ChatRequestFailed
from runmesh.core.schema import (
    ChatRequest,
    ChatResponse,
    StreamChunk,
)

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (openai.OpenAIError, httpx.HTTPError)


@register_client("openai")
@register_client("openrouter")
@register_client("custom")
class OpenAIChatClient(ChatClient):
    """Chat client backed by :class:`openai.AsyncOpenAI`."""

    def __init__(self, config: ClientConfig, client: Optional[openai.AsyncOpenAI] = None) -> None:
        self.config = config
        self._client = client or openai.AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            organization=config.organization,
            timeout=httpx.Timeout(config.timeout),
            max_retries=config.retries,
            default_headers=config.headers or None,
        )

    async def respond(self, request: ChatRequest) -> ChatResponse:
        payload = request.to_payload(self.config.default_model)
        logger.debug(
            "Chat request: model=%s messages=%d tools=%d",
            payload["model"],
            len(payload["messages"]),
            len(payload.get("tools", [])),
        )
        try:
            completion = await self._client.chat.completions.create(**payload, stream=False)
        except _TRANSPORT_ERRORS as exc:
            logger.error("Chat request failed: %s", exc)
            raise ChatRequestFailed("OpenAI chat request failed", exc) from exc
        return ChatResponse.model_validate(completion.model_dump())

    async def stream(self, request: ChatRequest) -> AsyncIterator[StreamChunk]:
        payload = request.to_payload(self.config.default_model)
        logger.debug("Streaming chat request: model=%s", payload["model"])
        try:
            source = await self._client.chat.completions.create(**payload, stream=True)
        except _TRANSPORT_ERRORS as exc:
            logger.error("Streaming request failed: %s", exc)
            raise ChatRequestFailed("OpenAI streaming request failed", exc) from exc
        return self._iterate(source)

    async def _iterate(self, source: Any) -> AsyncIterator[StreamChunk]:
        try:
            async for chunk in source:
                yield StreamChunk.model_validate(chunk.model_dump())
        except _TRANSPORT_ERRORS as exc:
            logger.error("Stream interrupted: %s", exc)
            raise ChatRequestFailed("OpenAI stream interrupted", exc) from exc

    def with_model(self, model: str) -> "OpenAIChatClient":
        return OpenAIChatClient(
            self.config.model_copy(update={"default_model": model}), client=self._client
        )
