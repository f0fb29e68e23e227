"""
Admission-control policies.

A policy is a read-only predicate over the pending conversation that runs before any model call.
Policies may be plain functions or coroutine functions returning a :class:`PolicyResult`.
"""

import inspect
import logging
from typing import (
    Awaitable,
    Callable,
    List,
    Optional,
    Sequence,
    Union,
)

from pydantic import BaseModel

from runmesh.core.errors import PolicyRejected
from runmesh.core.schema import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_REJECTION = "Policy rejected the request"


class PolicyContext(BaseModel):
    """What a policy gets to inspect."""

    agent_name: str
    messages: List[ChatMessage]


class PolicyResult(BaseModel):
    """Allow/deny verdict with an optional reason."""

    allow: bool
    reason: Optional[str] = None


Policy = Callable[[PolicyContext], Union[PolicyResult, Awaitable[PolicyResult]]]


async def enforce_policies(policies: Optional[Sequence[Policy]], context: PolicyContext) -> None:
    """
    Evaluate *policies* in order; the first denial wins.

    Raises
    ------
    PolicyRejected
        Carrying the denying policy's reason, or a generic default.
    """
    if not policies:
        return

    for policy in policies:
        result = policy(context)
        if inspect.isawaitable(result):
            result = await result
        if not result.allow:
            reason = result.reason or DEFAULT_REJECTION
            logger.info("Policy denied agent '%s': %s", context.agent_name, reason)
            raise PolicyRejected(reason)
