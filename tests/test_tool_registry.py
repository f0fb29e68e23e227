"""Tests for the tool registry and call-schema projection."""

from typing import List

from pydantic import BaseModel

from runmesh.tools import (
    ToolContext,
    ToolRegistry,
    tool,
)
from runmesh.tools.builtin import default_registry


class EchoInput(BaseModel):
    """Input for the echo tool."""

    x: str


def _echo(args: EchoInput, context: ToolContext) -> str:
    return args.x


def test_register_then_get_returns_latest_definition() -> None:
    """Registering twice under one name keeps the last definition."""
    registry = ToolRegistry()
    first = tool("echo", "first", EchoInput, _echo)
    second = tool("echo", "second", EchoInput, _echo)

    registry.register(first)
    registry.register(second)

    assert registry.get("echo") is second
    assert len(registry) == 1
    assert registry.get("missing") is None


def test_list_preserves_registration_order() -> None:
    """Listing follows registration order."""
    registry = ToolRegistry()
    for name in ["b", "a", "c"]:
        registry.register(tool(name, name, EchoInput, _echo))

    assert [definition.name for definition in registry.list()] == ["b", "a", "c"]
    assert "a" in registry


def test_to_call_schemas_shape() -> None:
    """Each tool is advertised as an object-typed function schema."""
    registry = ToolRegistry([tool("echo", "Echo x back", EchoInput, _echo)])

    schemas = registry.to_call_schemas()

    assert len(schemas) == 1
    schema = schemas[0]
    assert schema["type"] == "function"
    assert schema["function"]["name"] == "echo"
    assert schema["function"]["description"] == "Echo x back"
    parameters = schema["function"]["parameters"]
    assert parameters["type"] == "object"
    assert parameters["properties"]["x"]["type"] == "string"
    assert parameters["required"] == ["x"]
    assert "$ref" not in parameters


def test_decorator_registers_signature_derived_tool() -> None:
    """The decorator without a schema derives one from the signature and docstring."""
    registry = ToolRegistry()

    @registry.tool("sum_all")
    def sum_all(values: List[int], start: int = 0) -> int:
        """Sum a list of integers."""
        return start + sum(values)

    definition = registry.get("sum_all")
    assert definition is not None
    assert definition.description == "Sum a list of integers."
    parameters = definition.to_call_schema()["function"]["parameters"]
    assert parameters["required"] == ["values"]
    assert parameters["properties"]["values"]["type"] == "array"
    # The decorated function itself is returned untouched.
    assert sum_all([1, 2]) == 3


def test_decorator_with_schema_uses_function_as_handler() -> None:
    """With an explicit schema the function becomes the handler as-is."""
    registry = ToolRegistry()

    @registry.tool("echo", EchoInput, description="Echo")
    def echo(args: EchoInput, context: ToolContext) -> str:
        return args.x

    definition = registry.get("echo")
    assert definition is not None
    assert definition.handler is echo
    assert definition.input_schema is EchoInput


def test_default_registry_has_echo() -> None:
    """The CLI registry ships the echo tool."""
    registry = default_registry()
    assert [definition.name for definition in registry] == ["echo"]
