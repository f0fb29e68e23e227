"""Dispatches tool calls to registered handlers and wraps their errors."""

import inspect
import logging
from typing import (
    Any,
    Iterable,
    Mapping,
    Optional,
    Union,
)

from runmesh.core.errors import (
    SchemaValidationFailed,
    ToolExecutionFailed,
    ToolInputInvalid,
    ToolNotFound,
)
from runmesh.core.validation import assert_valid
from runmesh.tools import (
    ToolContext,
    ToolDefinition,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Validates tool arguments and invokes the matching handler, one attempt per call."""

    def __init__(self, tools: Union[ToolRegistry, Mapping[str, ToolDefinition]]) -> None:
        self._tools = tools

    @classmethod
    def from_list(cls, tools: Iterable[ToolDefinition]) -> "ToolExecutor":
        """Build an executor over a snapshot of *tools*."""
        return cls({definition.name: definition for definition in tools})

    async def execute(
        self, name: str, args: Any = None, context: Optional[ToolContext] = None
    ) -> Any:
        """
        Look up *name*, validate *args* against its input schema and run its handler.

        Parameters
        ----------
        name:
            The registered tool name.
        args:
            Decoded arguments for the tool.  If *None*, an empty dict is assumed.
        context:
            Execution context passed to the handler (``run_id``, ``metadata``).

        Returns
        -------
        Any
            Whatever the handler returns (awaited if it returned an awaitable).

        Raises
        ------
        ToolNotFound
            If no tool is registered under *name*.
        ToolInputInvalid
            If *args* fail validation; the handler is not called.
        ToolExecutionFailed
            If the handler raises; the original exception is the cause.
        """
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFound(name)

        if args is None:
            args = {}

        try:
            validated = assert_valid(definition.input_schema, args)
        except SchemaValidationFailed as exc:
            logger.warning("Invalid arguments for tool '%s': %s", name, exc.cause)
            raise ToolInputInvalid(
                f"Invalid arguments for tool '{name}': {exc.cause}", name, exc.cause
            ) from exc.cause

        context = context or ToolContext()
        try:
            logger.debug("Executing tool '%s' with args=%s", name, args)
            result = definition.handler(validated, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error in tool '%s'", name)
            raise ToolExecutionFailed(f"Tool execution failed: {name}", name, exc) from exc

        return result
