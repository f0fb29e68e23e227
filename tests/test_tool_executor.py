"""
Sanity tests for the tool executor.

Run with:
$ pytest -q
"""

from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from runmesh.agent.tool_executor import ToolExecutor
from runmesh.core.errors import (
    ToolError,
    ToolExecutionFailed,
    ToolInputInvalid,
    ToolNotFound,
)
from runmesh.tools import (
    ToolContext,
    ToolRegistry,
    function_tool,
    tool,
)


class AddInput(BaseModel):
    """Input for the test ``add`` tool."""

    a: int
    b: int


calls: list[Any] = []


def _add(args: AddInput, context: ToolContext) -> int:
    """Return the sum of two integers (used only for tests)."""
    calls.append((args, context))
    return args.a + args.b


async def _explode(args: AddInput, context: ToolContext) -> int:
    raise RuntimeError("kaboom")


def _executor() -> ToolExecutor:
    registry = ToolRegistry()
    registry.register(tool("add", "Add two integers", AddInput, _add))
    registry.register(tool("explode", "Always fails", AddInput, _explode))
    return ToolExecutor(registry)


async def test_execute_tool_success() -> None:
    """Executor should return the handler's value for valid input."""
    calls.clear()
    result = await _executor().execute("add", {"a": 2, "b": 3}, ToolContext(run_id="run-7"))

    assert result == 5
    assert calls[0][1].run_id == "run-7"
    assert isinstance(calls[0][0], AddInput)


async def test_execute_tool_missing() -> None:
    """Executor should raise *ToolNotFound* for an unknown tool."""
    try:
        await _executor().execute("not_a_tool", {})
    except ToolNotFound as exc:
        assert "not_a_tool" in str(exc)
        assert exc.tool_name == "not_a_tool"
    else:  # pragma: no cover
        raise AssertionError("ToolNotFound was not raised")


async def test_execute_tool_bad_args_never_calls_handler() -> None:
    """Invalid input raises *ToolInputInvalid* and the handler is not invoked."""
    calls.clear()
    try:
        await _executor().execute("add", {"a": 2})  # missing 'b'
    except ToolInputInvalid as exc:
        assert "Invalid arguments" in str(exc)
        assert isinstance(exc.cause, PydanticValidationError)
    else:  # pragma: no cover
        raise AssertionError("ToolInputInvalid was not raised")
    assert calls == []


async def test_execute_tool_handler_failure_is_wrapped() -> None:
    """Handler errors (including async ones) become *ToolExecutionFailed* with the cause kept."""
    try:
        await _executor().execute("explode", {"a": 1, "b": 1})
    except ToolExecutionFailed as exc:
        assert isinstance(exc.cause, RuntimeError)
        assert exc.__cause__ is exc.cause
        assert isinstance(exc, ToolError)
        assert not isinstance(exc, ToolInputInvalid)
    else:  # pragma: no cover
        raise AssertionError("ToolExecutionFailed was not raised")


async def test_execute_defaults_missing_args_to_empty_object() -> None:
    """``None`` arguments validate as ``{}``."""

    class NoInput(BaseModel):
        pass

    executor = ToolExecutor.from_list([tool("ping", "Ping", NoInput, lambda args, ctx: "pong")])
    assert await executor.execute("ping") == "pong"


async def test_function_tool_receives_keyword_arguments_and_context() -> None:
    """Signature-derived tools are called with keyword arguments."""

    def greet(name: str, punctuation: str = "!", context: ToolContext | None = None) -> str:
        """Greet someone."""
        assert context is not None
        return f"hello {name}{punctuation} ({context.metadata['who']})"

    executor = ToolExecutor.from_list([function_tool(greet)])
    result = await executor.execute(
        "greet", {"name": "ada"}, ToolContext(metadata={"who": "test"})
    )

    assert result == "hello ada! (test)"
