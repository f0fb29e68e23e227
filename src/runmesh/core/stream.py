"""
Streaming protocol.

:class:`ResponseStream` turns a raw delta feed into three event kinds:

* ``token``     - a text fragment, in arrival order;
* ``tool_call`` - a tool-call fragment, forwarded as received (fragments of one call may be split
  across chunks; use :class:`ToolCallAccumulator` to merge them);
* ``final``     - emitted once, when a chunk finishes for any reason other than ``"length"``; it
  carries the assembled assistant message.

A stream that ends without a ``final`` event was cut short (cancelled transport, aborted feed).
"""

import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import BaseModel

from runmesh.core.schema import (
    ChatMessage,
    FunctionCall,
    StreamChunk,
    ToolCall,
    ToolCallDelta,
    text_from_content,
)

logger = logging.getLogger(__name__)

TRUNCATED_FINISH_REASON = "length"


class TokenEvent(BaseModel):
    """A text fragment."""

    type: Literal["token"] = "token"
    value: str


class ToolCallEvent(BaseModel):
    """A tool-call fragment, exactly as received."""

    type: Literal["tool_call"] = "tool_call"
    tool_call: ToolCallDelta


class FinalEvent(BaseModel):
    """The assembled assistant message."""

    type: Literal["final"] = "final"
    message: ChatMessage


StreamEvent = Union[TokenEvent, ToolCallEvent, FinalEvent]


class ToolCallAccumulator:
    """
    Merges streamed tool-call fragments into complete calls.

    Fragments are grouped by ``index``; a fragment whose ``id`` differs from the one already seen
    at that index starts a new call.  The first id and name seen win, argument text is concatenated.
    """

    def __init__(self) -> None:
        self._calls: List[Dict[str, Any]] = []
        self._by_index: Dict[int, Dict[str, Any]] = {}

    def add(self, fragment: Union[ToolCallDelta, Dict[str, Any]]) -> None:
        """Fold one fragment into the accumulated calls."""
        if not isinstance(fragment, ToolCallDelta):
            fragment = ToolCallDelta.model_validate(fragment)

        slot = self._by_index.get(fragment.index)
        if slot is None or (fragment.id and slot["id"] and fragment.id != slot["id"]):
            slot = {"index": fragment.index, "id": None, "name": None, "arguments": None}
            self._calls.append(slot)
            self._by_index[fragment.index] = slot

        if fragment.id and not slot["id"]:
            slot["id"] = fragment.id
        if fragment.function is not None:
            if fragment.function.name and not slot["name"]:
                slot["name"] = fragment.function.name
            if fragment.function.arguments is not None:
                slot["arguments"] = (slot["arguments"] or "") + fragment.function.arguments

    def tool_calls(self) -> List[ToolCall]:
        """Assembled calls in first-seen order, with fallbacks for missing pieces."""
        return [
            ToolCall(
                id=slot["id"] or f"call_{position}",
                function=FunctionCall(
                    name=slot["name"] or "unknown", arguments=slot["arguments"] or "{}"
                ),
            )
            for position, slot in enumerate(self._calls)
        ]

    def __len__(self) -> int:
        return len(self._calls)


class ResponseStream:
    """Lazy, single-pass event sequence over a delta feed."""

    def __init__(self, source: AsyncIterable[Union[StreamChunk, Dict[str, Any]]]) -> None:
        self._source = source
        self._started = False
        self.final: Optional[ChatMessage] = None

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._started:
            raise RuntimeError("ResponseStream can only be consumed once")
        self._started = True
        return self._events()

    async def _events(self) -> AsyncIterator[StreamEvent]:
        assembled = ""
        accumulator = ToolCallAccumulator()
        final_sent = False

        async for raw in self._source:
            chunk = raw if isinstance(raw, StreamChunk) else StreamChunk.model_validate(raw)
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta

            text = text_from_content(delta.content)
            if text:
                assembled += text
                yield TokenEvent(value=text)

            for fragment in delta.tool_calls or []:
                accumulator.add(fragment)
                yield ToolCallEvent(tool_call=fragment)

            if (
                choice.finish_reason
                and choice.finish_reason != TRUNCATED_FINISH_REASON
                and not final_sent
            ):
                final_sent = True
                self.final = ChatMessage(
                    role="assistant",
                    content=assembled,
                    tool_calls=accumulator.tool_calls() if len(accumulator) else None,
                )
                logger.debug(
                    "Stream finished (%s): %d chars, %d tool calls",
                    choice.finish_reason,
                    len(assembled),
                    len(accumulator),
                )
                yield FinalEvent(message=self.final)

        if not final_sent:
            logger.debug("Stream ended without a final event after %d chars", len(assembled))

    async def collect_text(self) -> str:
        """Drain the stream and return the final text (falls back to the joined tokens)."""
        full_text = ""
        async for event in self:
            if isinstance(event, TokenEvent):
                full_text += event.value
            elif isinstance(event, FinalEvent) and isinstance(event.message.content, str):
                full_text = event.message.content
        return full_text
