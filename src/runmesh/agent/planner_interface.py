"""
Planner interface for RunMesh.

A plan is a caller-declared decomposition of an objective into ordered steps.  :meth:`Planner.plan`
only builds the data; :meth:`Planner.execute` runs every pending step through one full
:meth:`AgentExecutor.run <runmesh.agent.agent_loop.AgentExecutor.run>`, feeding each step a short
summary of what the previously completed steps produced.
"""

import inspect
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Literal,
    Optional,
    Sequence,
    Union,
)

import pydantic_core
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from runmesh.agent.agent_loop import AgentExecutor

logger = logging.getLogger(__name__)

StepStatus = Literal["pending", "completed", "skipped", "failed"]

DEFAULT_STEPS = (
    "Analyze the objective and gather relevant information",
    "Reason about the best approach to achieve the objective",
    "Summarize findings and provide a conclusion",
)
SUMMARY_LIMIT = 200


# ---------------------------------------------------------------------------
# Plan data
# ---------------------------------------------------------------------------
class PlanStep(BaseModel):
    """One step of a plan."""

    id: str
    description: str
    status: StepStatus = "pending"
    result: Any = None
    error: Optional[str] = None


class Plan(BaseModel):
    """An objective with its ordered steps."""

    objective: str
    steps: List[PlanStep] = Field(default_factory=list)
    continue_on_error: bool = False
    success: bool = False


StepHook = Callable[[PlanStep], Union[None, Awaitable[None]]]
ErrorHook = Callable[[PlanStep, BaseException], Union[None, Awaitable[None]]]


class PlanCallbacks(BaseModel):
    """Optional hooks fired around each step; sync or async."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    on_step_start: Optional[StepHook] = None
    on_step_complete: Optional[StepHook] = None
    on_step_error: Optional[ErrorHook] = None


async def _fire(hook: Optional[Callable[..., Any]], *args: Any) -> None:
    if hook is None:
        return
    outcome = hook(*args)
    if inspect.isawaitable(outcome):
        await outcome


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------
class Planner:
    """Runs plans step by step on top of an :class:`AgentExecutor`."""

    def __init__(self, executor: AgentExecutor) -> None:
        self.executor = executor

    def plan(
        self,
        objective: str,
        steps: Optional[Sequence[str]] = None,
        continue_on_error: bool = False,
    ) -> Plan:
        """Create a plan with every step pending; nothing is executed."""
        descriptions = list(steps) if steps is not None else list(DEFAULT_STEPS)
        return Plan(
            objective=objective,
            steps=[
                PlanStep(id=f"step-{index}", description=description)
                for index, description in enumerate(descriptions, start=1)
            ],
            continue_on_error=continue_on_error,
        )

    async def execute(self, plan: Plan, callbacks: Optional[PlanCallbacks] = None) -> Plan:
        """
        Run every pending step of *plan* in order, updating it in place.

        A failed step is marked ``failed`` with its error message; unless the plan continues on
        errors, all later steps are marked ``skipped`` and execution stops.  ``plan.success`` is
        true only when every step completed.
        """
        callbacks = callbacks or PlanCallbacks()

        for position, step in enumerate(plan.steps):
            if step.status != "pending":
                continue
            try:
                await _fire(callbacks.on_step_start, step)

                prompt = self._build_step_prompt(plan, step, position)
                logger.info("Executing plan step %s: %s", step.id, step.description)
                result = await self.executor.run(prompt)

                step.result = result.content or result
                step.status = "completed"
                await _fire(callbacks.on_step_complete, step)
            except Exception as exc:  # noqa: BLE001
                step.status = "failed"
                step.error = str(exc)
                logger.warning("Plan step %s failed: %s", step.id, exc)
                await _fire(callbacks.on_step_error, step, exc)

                if not plan.continue_on_error:
                    for remaining in plan.steps[position + 1 :]:
                        remaining.status = "skipped"
                    break

        plan.success = all(step.status == "completed" for step in plan.steps)
        return plan

    def _build_step_prompt(self, plan: Plan, current: PlanStep, position: int) -> str:
        parts = [f"Objective: {plan.objective}", "", f"Current Step: {current.description}"]

        completed = [step for step in plan.steps[:position] if step.status == "completed"]
        if completed:
            parts.extend(["", "Context from previous steps:"])
            for step in completed:
                parts.append(f"- {step.description}: {format_step_result(step.result)}")

        parts.extend(["", "Please complete this step and provide a clear response."])
        return "\n".join(parts)


def format_step_result(result: Any, limit: int = SUMMARY_LIMIT) -> str:
    """Short summary of a step result: text or JSON, cut to *limit* characters plus ``...``."""
    if isinstance(result, str):
        text = result
    elif isinstance(result, (BaseModel, dict, list, tuple)):
        text = pydantic_core.to_json(result, fallback=str).decode("utf-8")
    else:
        return str(result)
    return text[:limit] + "..." if len(text) > limit else text
