"""
Tool registry for RunMesh.

A tool is a named, schema-typed callable the model may ask the agent to invoke.  Tools are stored in
a :class:`ToolRegistry` keyed by name and advertised to the model in the chat-completions
``{"type": "function", "function": {...}}`` form.

Tools can be declared three ways::

    registry.register(tool("echo", "Echo text back", EchoInput, handler))

    @registry.tool("echo", EchoInput)
    def echo(args: EchoInput, context: ToolContext) -> str:
        return args.text

    registry.register(function_tool(my_function))  # schema derived from the signature
"""

import inspect
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    get_type_hints,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    create_model,
)

from runmesh.core.validation import to_json_schema

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any, "ToolContext"], Any]


class ToolContext(BaseModel):
    """Execution context handed to every tool handler."""

    run_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ToolDefinition(BaseModel):
    """Immutable record of a tool: name, description, input schema and handler."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    input_schema: Any
    handler: ToolHandler

    def to_call_schema(self) -> Dict[str, Any]:
        """Project the tool into the transport-neutral call-schema form."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": to_json_schema(self.input_schema, self.name),
            },
        }


def tool(name: str, description: str, input_schema: Any, handler: ToolHandler) -> ToolDefinition:
    """Build a :class:`ToolDefinition`."""
    return ToolDefinition(
        name=name, description=description, input_schema=input_schema, handler=handler
    )


def function_tool(
    fn: Callable[..., Any], name: str | None = None, description: str | None = None
) -> ToolDefinition:
    """
    Wrap a plain function as a tool.

    The input schema is derived from the function signature and type hints; unannotated parameters
    accept any value.  A parameter named ``context`` receives the :class:`ToolContext` instead of
    model-supplied input.
    """
    sig = inspect.signature(fn)
    type_hints = get_type_hints(fn)
    fields: Dict[str, Any] = {}
    wants_context = False
    for param_name, param in sig.parameters.items():
        if param_name == "context":
            wants_context = True
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        param_type = type_hints.get(param_name, Any)
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param_name] = (param_type, default)

    tool_name = name or fn.__name__
    input_model = create_model(f"{tool_name.title().replace('_', '')}Input", **fields)

    def handler(args: BaseModel, context: ToolContext) -> Any:
        kwargs = {field: getattr(args, field) for field in type(args).model_fields}
        if wants_context:
            kwargs["context"] = context
        return fn(**kwargs)

    return tool(
        tool_name,
        description if description is not None else inspect.getdoc(fn) or "",
        input_model,
        handler,
    )


class ToolRegistry:
    """Mapping of tool name -> :class:`ToolDefinition`; the last registration under a name wins."""

    def __init__(self, tools: Optional[List[ToolDefinition]] = None) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in tools or []:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        """Store *definition*, replacing any tool registered under the same name."""
        if definition.name in self._tools:
            logger.debug("Replacing tool '%s'", definition.name)
        else:
            logger.debug("Registering tool '%s'", definition.name)
        self._tools[definition.name] = definition

    def tool(
        self, name: str, input_schema: Any = None, description: str | None = None
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """
        Decorator form of :meth:`register`.

        With an *input_schema* the decorated function is used as the handler directly and is called
        as ``fn(validated_input, context)``; without one the schema is derived from its signature
        (see :func:`function_tool`).
        """

        def wrapper(fn: Callable[..., Any]) -> Callable[..., Any]:
            if input_schema is None:
                definition = function_tool(fn, name=name, description=description)
            else:
                definition = tool(
                    name,
                    description if description is not None else inspect.getdoc(fn) or "",
                    input_schema,
                    fn,
                )
            self.register(definition)
            return fn

        return wrapper

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Return the tool registered under *name*, or ``None``."""
        return self._tools.get(name)

    def list(self) -> List[ToolDefinition]:
        """All registered tools in registration order."""
        return list(self._tools.values())

    def to_call_schemas(self) -> List[Dict[str, Any]]:
        """Call schemas of every registered tool, used to advertise them to the model."""
        return [definition.to_call_schema() for definition in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())
