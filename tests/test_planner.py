"""Tests for plan construction and sequential plan execution."""

from fakes import (
    ScriptedClient,
    make_response,
)

from runmesh.agent.agent_loop import (
    AgentExecutionConfig,
    AgentExecutor,
    AgentRunResult,
)
from runmesh.agent.planner_interface import (
    DEFAULT_STEPS,
    PlanCallbacks,
    Planner,
    PlanStep,
    format_step_result,
)
from runmesh.core.errors import ChatRequestFailed
from runmesh.core.schema import (
    ChatRequest,
    ChatResponse,
)


class FailingOnSecondCall(ScriptedClient):
    """Answers every call except the second, which fails at the transport."""

    async def respond(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if len(self.requests) == 2:
            raise ChatRequestFailed("transport down")
        return make_response(f"answer {len(self.requests)}")


def _planner(client) -> Planner:
    return Planner(
        AgentExecutor(AgentExecutionConfig(name="planner", model="test-model", client=client))
    )


def test_plan_builds_pending_steps_without_executing() -> None:
    """``plan`` is pure data construction."""
    client = ScriptedClient()
    plan = _planner(client).plan("Ship it", ["one", "two"])

    assert [(step.id, step.description, step.status) for step in plan.steps] == [
        ("step-1", "one", "pending"),
        ("step-2", "two", "pending"),
    ]
    assert plan.success is False
    assert client.calls == 0


def test_plan_uses_default_steps() -> None:
    """Without explicit steps the three default steps are used."""
    plan = _planner(ScriptedClient()).plan("Objective")
    assert [step.description for step in plan.steps] == list(DEFAULT_STEPS)


async def test_all_steps_complete_with_context_from_previous_steps() -> None:
    """Each step prompt carries the objective, its description and earlier results."""
    client = ScriptedClient([make_response("alpha"), make_response("beta")])
    planner = _planner(client)
    plan = planner.plan("Write a report", ["Research", "Draft"])

    await planner.execute(plan)

    assert plan.success is True
    assert [step.status for step in plan.steps] == ["completed", "completed"]
    assert [step.result for step in plan.steps] == ["alpha", "beta"]

    first_prompt = client.requests[0].messages[-1].content
    second_prompt = client.requests[1].messages[-1].content
    assert first_prompt.startswith("Objective: Write a report\n\nCurrent Step: Research")
    assert "Context from previous steps" not in first_prompt
    assert "Context from previous steps:\n- Research: alpha" in second_prompt
    assert second_prompt.endswith("Please complete this step and provide a clear response.")


async def test_failure_skips_remaining_steps() -> None:
    """Step 2 fails: step 1 completed, step 2 failed, step 3 skipped, overall failure."""
    client = FailingOnSecondCall()
    planner = _planner(client)
    plan = planner.plan("Objective", ["a", "b", "c"])

    await planner.execute(plan)

    assert [step.status for step in plan.steps] == ["completed", "failed", "skipped"]
    assert plan.steps[1].error == "transport down"
    assert plan.success is False
    assert client.calls == 2


async def test_continue_on_error_runs_every_step() -> None:
    """With ``continue_on_error`` later steps still run, but the plan is not a success."""
    client = FailingOnSecondCall()
    planner = _planner(client)
    plan = planner.plan("Objective", ["a", "b", "c"], continue_on_error=True)

    await planner.execute(plan)

    assert [step.status for step in plan.steps] == ["completed", "failed", "completed"]
    assert plan.success is False
    third_prompt = client.requests[2].messages[-1].content
    assert "- a: answer 1" in third_prompt
    assert "- b:" not in third_prompt


async def test_callbacks_fire_in_order() -> None:
    """Sync and async callbacks are both honoured."""
    events = []

    async def on_start(step: PlanStep) -> None:
        events.append(("start", step.id))

    def on_complete(step: PlanStep) -> None:
        events.append(("complete", step.id))

    def on_error(step: PlanStep, error: BaseException) -> None:
        events.append(("error", step.id, type(error).__name__))

    planner = _planner(FailingOnSecondCall())
    plan = planner.plan("Objective", ["a", "b"])
    await planner.execute(
        plan,
        PlanCallbacks(on_step_start=on_start, on_step_complete=on_complete, on_step_error=on_error),
    )

    assert events == [
        ("start", "step-1"),
        ("complete", "step-1"),
        ("start", "step-2"),
        ("error", "step-2", "ChatRequestFailed"),
    ]


async def test_empty_content_stores_full_run_result() -> None:
    """A step whose answer has no content keeps the whole run result."""
    planner = _planner(ScriptedClient([make_response(None)]))
    plan = planner.plan("Objective", ["only"])

    await planner.execute(plan)

    assert isinstance(plan.steps[0].result, AgentRunResult)


def test_format_step_result_truncates() -> None:
    """Summaries are capped at 200 characters plus an ellipsis."""
    assert format_step_result("short") == "short"
    assert format_step_result("x" * 250) == "x" * 200 + "..."
    assert format_step_result({"k": "v"}) == '{"k":"v"}'
    assert format_step_result(42) == "42"
