"""
Conversation memory.

The engine talks to memory through :class:`MemoryAdapter`.  Adapters shared between concurrent runs
must serialize their own ``add`` / ``history`` calls; :class:`InMemoryAdapter` does so with an
:class:`asyncio.Lock`.
"""

import asyncio
import logging
import time
from typing import (
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from runmesh.core.schema import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


@runtime_checkable
class MemoryAdapter(Protocol):
    """Per-agent conversation timeline."""

    async def add(self, agent_name: str, message: ChatMessage) -> None:
        """Append *message* to *agent_name*'s timeline."""

    async def history(self, agent_name: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """Most recent *limit* messages, oldest first."""


class InMemoryAdapter:
    """Process-local memory; messages are stored as copies stamped with a ``timestamp``."""

    def __init__(self, default_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.default_limit = default_limit
        self._store: Dict[str, List[ChatMessage]] = {}
        self._lock = asyncio.Lock()

    async def add(self, agent_name: str, message: ChatMessage) -> None:
        entry = message.model_copy(deep=True)
        setattr(entry, "timestamp", time.time())
        async with self._lock:
            self._store.setdefault(agent_name, []).append(entry)
        logger.debug("Stored %s message for agent '%s'", message.role, agent_name)

    async def history(self, agent_name: str, limit: Optional[int] = None) -> List[ChatMessage]:
        limit = self.default_limit if limit is None else limit
        if limit <= 0:
            return []
        async with self._lock:
            timeline = self._store.get(agent_name, [])
            return [entry.model_copy(deep=True) for entry in timeline[-limit:]]

    async def clear(self, agent_name: Optional[str] = None) -> None:
        """Forget one agent's timeline, or everything when *agent_name* is ``None``."""
        async with self._lock:
            if agent_name is None:
                self._store.clear()
            else:
                self._store.pop(agent_name, None)
