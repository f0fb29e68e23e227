"""
Schema definitions for agent <-> chat client <-> tool messages.

These data models are the contract between the orchestration engine, the chat client and the
streaming protocol.  They follow the chat-completions wire shape but carry no transport logic, so
they can be imported anywhere without side-effects.
"""

from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

Role = Literal["system", "user", "assistant", "tool"]
Content = Union[str, List[Any], None]


def text_from_content(content: Any) -> Optional[str]:
    """
    Flatten message content into plain text.

    Strings are returned unchanged.  A list of content parts is concatenated: string parts as-is,
    parts carrying a ``text`` entry contribute that text, anything else contributes nothing.
    Returns ``None`` when *content* is neither a string nor a list.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        pieces: List[str] = []
        for part in content:
            if isinstance(part, str):
                pieces.append(part)
            elif isinstance(part, dict):
                pieces.append(part.get("text") or "")
            else:
                pieces.append(getattr(part, "text", None) or "")
        return "".join(pieces)
    return None


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class FunctionCall(BaseModel):
    """Target tool name and its serialized (JSON text) arguments."""

    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    """A call the assistant wants the agent to execute."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class ChatMessage(BaseModel):
    """One turn of a conversation."""

    model_config = ConfigDict(extra="allow")

    role: Role
    content: Content = None
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None

    @property
    def text(self) -> Optional[str]:
        """Plain-text view of :attr:`content`."""
        return text_from_content(self.content)

    def to_wire(self) -> Dict[str, Any]:
        """Declared fields only; extras such as memory timestamps stay local."""
        return self.model_dump(exclude_none=True, include=set(type(self).model_fields))


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------
class ChatRequest(BaseModel):
    """A chat completion request; unknown provider options pass through untouched."""

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    tools: Optional[List[Dict[str, Any]]] = None
    response_format: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None

    def to_payload(self, default_model: Optional[str] = None) -> Dict[str, Any]:
        """Keyword payload for a chat client, with unset fields dropped."""
        payload = self.model_dump(exclude_none=True)
        payload["model"] = self.model or default_model
        payload["messages"] = [message.to_wire() for message in self.messages]
        if not payload.get("tools"):
            payload.pop("tools", None)
        return payload


class Usage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class ChatChoice(BaseModel):
    """One candidate completion."""

    index: int = 0
    message: Optional[ChatMessage] = None
    finish_reason: Optional[str] = None


class ChatResponse(BaseModel):
    """A complete chat completion."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    model: Optional[str] = None
    choices: List[ChatChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None

    @property
    def message(self) -> Optional[ChatMessage]:
        """Message of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message


# ---------------------------------------------------------------------------
# Streaming wire format
# ---------------------------------------------------------------------------
class FunctionCallDelta(BaseModel):
    """Partial function name / argument text."""

    name: Optional[str] = None
    arguments: Optional[str] = None


class ToolCallDelta(BaseModel):
    """A tool-call fragment; fragments of the same call share an ``index``."""

    index: int = 0
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[FunctionCallDelta] = None


class StreamDelta(BaseModel):
    """Incremental change carried by a stream chunk."""

    role: Optional[str] = None
    content: Content = None
    tool_calls: Optional[List[ToolCallDelta]] = None


class StreamChoice(BaseModel):
    """Choice slot of a stream chunk."""

    index: int = 0
    delta: StreamDelta = Field(default_factory=StreamDelta)
    finish_reason: Optional[str] = None


class StreamChunk(BaseModel):
    """One chunk of an incremental delta feed."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    model: Optional[str] = None
    choices: List[StreamChoice] = Field(default_factory=list)
