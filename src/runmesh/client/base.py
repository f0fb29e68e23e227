"""
Chat client interface.

This is the only seam through which the engine talks to a language model.  Concrete clients
translate :class:`~runmesh.core.schema.ChatRequest` into provider calls and surface every transport
failure as :class:`~runmesh.core.errors.ChatRequestFailed`.

Additional providers can be added by subclassing :class:`ChatClient` and registering via
:func:`register_client`.
"""

from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    AsyncIterator,
    Callable,
    Dict,
    Type,
)

from runmesh.config import ClientConfig
from runmesh.core.errors import ConfigurationError
from runmesh.core.schema import (
    ChatRequest,
    ChatResponse,
    StreamChunk,
)


class ChatClient(ABC):
    """Abstract chat client: one-shot completions and incremental delta feeds."""

    @abstractmethod
    async def respond(self, request: ChatRequest) -> ChatResponse:
        """Send *request* and return the complete response."""

    @abstractmethod
    async def stream(self, request: ChatRequest) -> AsyncIterator[StreamChunk]:
        """Send *request* in streaming mode and return the delta feed."""

    def with_model(self, model: str) -> "ChatClient":
        """Return a client whose default model is *model*."""
        raise NotImplementedError(f"{type(self).__name__} does not support switching models")


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_CLIENT_REGISTRY: Dict[str, Type[ChatClient]] = {}


def register_client(name: str) -> Callable:
    """Decorator to register a chat client class under provider *name*."""

    def wrapper(cls: Type[ChatClient]) -> Type[ChatClient]:
        _CLIENT_REGISTRY[name] = cls
        return cls

    return wrapper


def load_client(config: ClientConfig) -> ChatClient:
    """
    Factory that returns a client for ``config.provider``.

    Providers without a dedicated class fall back to the client registered as ``"openai"``, since
    every supported provider speaks the OpenAI-compatible protocol.
    """
    # Concrete clients register themselves on import.
    import runmesh.client.openai_client  # noqa: F401  pylint: disable=import-outside-toplevel,unused-import

    cls = _CLIENT_REGISTRY.get(config.provider.lower()) or _CLIENT_REGISTRY.get("openai")
    if cls is None:
        raise ConfigurationError(f"No chat client registered for provider '{config.provider}'.")
    return cls(config)  # type: ignore[call-arg]
