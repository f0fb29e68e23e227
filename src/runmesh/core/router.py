"""Rule-based model routing: pick a model per request, first matching rule wins."""

import inspect
import logging
from typing import (
    Awaitable,
    Callable,
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

from runmesh.core.schema import ChatRequest

logger = logging.getLogger(__name__)

Intent = Literal["classification", "extraction", "planning", "creative"]


class RouteInput(BaseModel):
    """What a routing rule can look at."""

    intent: Optional[Intent] = None
    prompt: str
    request: ChatRequest = Field(default_factory=ChatRequest)


class RouteResult(BaseModel):
    """Chosen model and why."""

    model: str
    reason: str


Matcher = Callable[[RouteInput], Union[bool, Awaitable[bool]]]


class RouterRule(BaseModel):
    """Send requests matching *matcher* to *model*."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    matcher: Matcher
    model: str
    reason: Optional[str] = None


class RouterConfig(BaseModel):
    """Default model plus ordered rules."""

    default_model: str
    rules: List[RouterRule] = Field(default_factory=list)


async def route_model(route_input: RouteInput, config: RouterConfig) -> RouteResult:
    """Return the model of the first matching rule, or the default model."""
    for rule in config.rules:
        matched = rule.matcher(route_input)
        if inspect.isawaitable(matched):
            matched = await matched
        if matched:
            logger.debug("Routing to %s via rule '%s'", rule.model, rule.name)
            return RouteResult(model=rule.model, reason=rule.reason or f"rule:{rule.name}")

    return RouteResult(model=config.default_model, reason="default")
