"""
RunMesh: agent orchestration engine.

Drives bounded tool-calling round trips with a chat model, exposes replies as typed event streams
and coerces model output into caller-supplied schemas.
"""

from runmesh.agent.agent import (
    Agent,
    create_agent,
)
from runmesh.agent.agent_loop import (
    AgentExecutionConfig,
    AgentExecutor,
    AgentRunResult,
)
from runmesh.agent.planner_interface import (
    Plan,
    PlanCallbacks,
    Planner,
)
from runmesh.agent.policies import (
    PolicyContext,
    PolicyResult,
)
from runmesh.core.response import generate_structured_output
from runmesh.core.stream import (
    ResponseStream,
    ToolCallAccumulator,
)
from runmesh.memory.memory_store import InMemoryAdapter
from runmesh.tools import (
    ToolContext,
    ToolRegistry,
    function_tool,
    tool,
)

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentExecutionConfig",
    "AgentExecutor",
    "AgentRunResult",
    "InMemoryAdapter",
    "Plan",
    "PlanCallbacks",
    "Planner",
    "PolicyContext",
    "PolicyResult",
    "ResponseStream",
    "ToolCallAccumulator",
    "ToolContext",
    "ToolRegistry",
    "create_agent",
    "function_tool",
    "generate_structured_output",
    "tool",
]
