"""
Main orchestration loop for RunMesh.

:class:`AgentExecutor` drives one conversation turn: build the message list, run the policy gate,
call the model, execute any requested tools and feed their results back, for at most
``max_tool_rounds`` rounds.  Tool calls within a round run strictly one after another, in the order
the model listed them.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import (
    Any,
    List,
    Literal,
    Optional,
    Union,
)

import pydantic_core
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from runmesh.agent.policies import (
    Policy,
    PolicyContext,
    enforce_policies,
)
from runmesh.agent.tool_executor import ToolExecutor
from runmesh.client.base import ChatClient
from runmesh.core.errors import ToolInputInvalid
from runmesh.core.schema import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ToolCall,
)
from runmesh.core.stream import ResponseStream
from runmesh.memory.memory_store import MemoryAdapter
from runmesh.observability.tracer import (
    CostModel,
    Trace,
    Tracer,
)
from runmesh.tools import (
    ToolContext,
    ToolRegistry,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 5


# ---------------------------------------------------------------------------
# Configuration & results
# ---------------------------------------------------------------------------
class AgentExecutionConfig(BaseModel):
    """Everything an :class:`AgentExecutor` needs; shared pieces are read-only during a run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    model: str
    client: ChatClient
    system_prompt: Optional[str] = None
    tools: Optional[ToolRegistry] = None
    memory: Optional[MemoryAdapter] = None
    policies: List[Policy] = Field(default_factory=list)
    max_tool_rounds: int = Field(DEFAULT_MAX_TOOL_ROUNDS, ge=1)
    cost_model: Optional[CostModel] = None


class ModelStep(BaseModel):
    """A model call and its response."""

    type: Literal["model"] = "model"
    request: ChatRequest
    response: ChatResponse


class ToolStep(BaseModel):
    """A tool invocation and its output."""

    type: Literal["tool"] = "tool"
    name: str
    input: Any = None
    output: Any = None


AgentStep = Union[ModelStep, ToolStep]


class AgentRunResult(BaseModel):
    """Final response plus the ordered audit trail of the run."""

    response: ChatResponse
    steps: List[AgentStep] = Field(default_factory=list)
    trace: Optional[Trace] = None

    @property
    def content(self) -> Optional[str]:
        """Text of the final assistant message, if any."""
        message = self.response.message
        return message.text if message is not None else None


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------
class AgentExecutor:
    """Runs prompts through the model / tool round-trip loop."""

    def __init__(self, config: AgentExecutionConfig) -> None:
        self.config = config
        self.tool_executor: Optional[ToolExecutor] = (
            ToolExecutor(config.tools) if config.tools is not None else None
        )

    @property
    def max_tool_rounds(self) -> int:
        return self.config.max_tool_rounds

    async def run(self, prompt: str) -> AgentRunResult:
        """
        Answer *prompt*, executing tool calls until the model stops asking or the bound is hit.

        Raises
        ------
        PolicyRejected
            Before any model call, if a policy denies the conversation.
        ToolError
            If a requested tool is missing, gets invalid input or fails; the run is aborted.
        ChatRequestFailed
            If the chat client fails.
        """
        tracer = Tracer(uuid.uuid4().hex, self.config.name, self.config.cost_model)
        steps: List[AgentStep] = []
        try:
            messages = await self._build_messages(prompt)
            await enforce_policies(
                self.config.policies,
                PolicyContext(agent_name=self.config.name, messages=messages),
            )

            request = ChatRequest(
                model=self.config.model, messages=messages, tools=self._tool_schemas()
            )
            response = await self._call_model(request, steps, tracer)

            rounds = 0
            assistant_recorded = False
            while self._should_use_tools(response):
                rounds += 1
                self._push_assistant(messages, response)
                await self._handle_tool_calls(response, messages, steps, tracer)

                if rounds >= self.max_tool_rounds:
                    logger.warning(
                        "Agent '%s' reached the tool round limit (%d)",
                        self.config.name,
                        self.max_tool_rounds,
                    )
                    assistant_recorded = True
                    break

                request = request.model_copy(update={"messages": list(messages)})
                response = await self._call_model(request, steps, tracer)

            if not assistant_recorded:
                self._push_assistant(messages, response)

            await self._persist_messages(messages, response, tracer)
        except Exception as exc:
            tracer.record_error(exc)
            tracer.finalize()
            raise

        return AgentRunResult(response=response, steps=steps, trace=tracer.finalize())

    async def stream(self, prompt: str) -> ResponseStream:
        """
        Build the conversation, run the policy gate and return the model's event stream.

        No tool rounds are driven here; acting on ``tool_call`` events is up to the caller.
        """
        messages = await self._build_messages(prompt)
        await enforce_policies(
            self.config.policies, PolicyContext(agent_name=self.config.name, messages=messages)
        )
        request = ChatRequest(model=self.config.model, messages=messages, tools=self._tool_schemas())
        logger.info("Agent '%s' streaming request", self.config.name)
        feed = await self.config.client.stream(request)
        if isinstance(feed, ResponseStream):
            return feed
        return ResponseStream(feed)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    async def _build_messages(self, prompt: str) -> List[ChatMessage]:
        messages: List[ChatMessage] = []

        if self.config.system_prompt:
            messages.append(ChatMessage(role="system", content=self.config.system_prompt))

        if self.config.memory is not None:
            history = await self.config.memory.history(self.config.name)
            for entry in history:
                # The configured system prompt always leads; stored ones are not repeated.
                if entry.role == "system" and self.config.system_prompt:
                    continue
                messages.append(entry)

        messages.append(ChatMessage(role="user", content=prompt))
        return messages

    def _tool_schemas(self) -> Optional[List[dict]]:
        if self.config.tools is None:
            return None
        return self.config.tools.to_call_schemas()

    async def _call_model(
        self, request: ChatRequest, steps: List[AgentStep], tracer: Tracer
    ) -> ChatResponse:
        logger.debug(
            "Agent '%s' calling model %s with %d messages",
            self.config.name,
            request.model,
            len(request.messages),
        )
        response = await self.config.client.respond(request)
        steps.append(ModelStep(request=request, response=response))
        tracer.add_usage(response.usage)
        message = response.message
        tracer.add_step(
            "model",
            {
                "response_id": response.id,
                "tool_calls": len(message.tool_calls or []) if message is not None else 0,
            },
        )
        return response

    def _should_use_tools(self, response: ChatResponse) -> bool:
        message = response.message
        return bool(message is not None and message.tool_calls and self.tool_executor is not None)

    @staticmethod
    def _push_assistant(messages: List[ChatMessage], response: ChatResponse) -> None:
        message = response.message
        if message is not None:
            messages.append(message)

    async def _handle_tool_calls(
        self,
        response: ChatResponse,
        messages: List[ChatMessage],
        steps: List[AgentStep],
        tracer: Tracer,
    ) -> None:
        message = response.message
        calls = message.tool_calls if message is not None else None
        if self.tool_executor is None or not calls:
            return

        for call in calls:
            name = call.function.name
            args = _decode_arguments(call)
            logger.info("Agent '%s' executing tool '%s'", self.config.name, name)
            output = await self.tool_executor.execute(
                name, args, ToolContext(run_id=response.id or None)
            )
            steps.append(ToolStep(name=name, input=args, output=output))
            tracer.add_step("tool", {"name": name, "tool_call_id": call.id})
            messages.append(
                ChatMessage(role="tool", tool_call_id=call.id, content=_serialize_output(output))
            )

    async def _persist_messages(
        self, messages: List[ChatMessage], response: ChatResponse, tracer: Tracer
    ) -> None:
        memory = self.config.memory
        if memory is None:
            return

        last_user = next((msg for msg in reversed(messages) if msg.role == "user"), None)
        if last_user is not None:
            await memory.add(self.config.name, last_user)

        assistant = response.message or ChatMessage(role="assistant", content="")
        if assistant.tool_calls:
            # Unanswered tool calls would make the stored history unreplayable.
            assistant = assistant.model_copy(
                update={"tool_calls": None, "content": assistant.content or ""}
            )
        await memory.add(self.config.name, assistant)
        tracer.add_step("memory", {"stored": 2 if last_user is not None else 1})


def _decode_arguments(call: ToolCall) -> Any:
    raw = call.function.arguments
    if not raw or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ToolInputInvalid(
            f"Arguments for tool '{call.function.name}' are not valid JSON: {exc}",
            call.function.name,
            exc,
        ) from exc


def _serialize_output(output: Any) -> str:
    return pydantic_core.to_json(output, fallback=str).decode("utf-8")
