"""High-level agent facade bundling an executor and a planner."""

import logging
from typing import (
    List,
    Optional,
    Sequence,
)

from runmesh.agent.agent_loop import (
    DEFAULT_MAX_TOOL_ROUNDS,
    AgentExecutionConfig,
    AgentExecutor,
    AgentRunResult,
)
from runmesh.agent.planner_interface import (
    Plan,
    PlanCallbacks,
    Planner,
)
from runmesh.agent.policies import Policy
from runmesh.client.base import (
    ChatClient,
    load_client,
)
from runmesh.config import (
    ClientConfig,
    Settings,
)
from runmesh.core.stream import ResponseStream
from runmesh.memory.memory_store import MemoryAdapter
from runmesh.tools import ToolRegistry

logger = logging.getLogger(__name__)


class Agent:
    """A named agent: run prompts, stream replies, and plan multi-step objectives."""

    def __init__(self, config: AgentExecutionConfig) -> None:
        self.config = config
        self.executor = AgentExecutor(config)
        self.planner = Planner(self.executor)

    @property
    def name(self) -> str:
        return self.config.name

    async def run(self, prompt: str) -> AgentRunResult:
        return await self.executor.run(prompt)

    async def stream(self, prompt: str) -> ResponseStream:
        return await self.executor.stream(prompt)

    def plan(
        self, objective: str, steps: Optional[Sequence[str]] = None, continue_on_error: bool = False
    ) -> Plan:
        return self.planner.plan(objective, steps, continue_on_error=continue_on_error)

    async def execute_plan(self, plan: Plan, callbacks: Optional[PlanCallbacks] = None) -> Plan:
        return await self.planner.execute(plan, callbacks)


def create_agent(
    name: str,
    model: Optional[str] = None,
    *,
    client: Optional[ChatClient] = None,
    system_prompt: Optional[str] = None,
    tools: Optional[ToolRegistry] = None,
    memory: Optional[MemoryAdapter] = None,
    policies: Optional[List[Policy]] = None,
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    settings: Optional[Settings] = None,
) -> Agent:
    """
    Build an :class:`Agent`.

    When no *client* is given one is created from *settings* (default: the process settings) via
    :meth:`ClientConfig.from_settings`; *model* then defaults to the configured model.
    """
    if client is None:
        client_config = ClientConfig.from_settings(settings)
        client = load_client(client_config)
        model = model or client_config.default_model
    if not model:
        raise ValueError("A model name is required when passing an explicit client")

    logger.debug("Creating agent '%s' on model %s", name, model)
    config = AgentExecutionConfig(
        name=name,
        model=model,
        client=client,
        system_prompt=system_prompt,
        tools=tools,
        memory=memory,
        policies=policies or [],
        max_tool_rounds=max_tool_rounds,
    )
    return Agent(config)
