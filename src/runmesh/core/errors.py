"""
Error hierarchy for RunMesh.

Every failure surfaced by the engine is a :class:`RunMeshError` subclass so calling code can branch
on the kind of failure without string matching.  The original exception, when there is one, is kept
both as ``cause`` and as the chained ``__cause__``.
"""

from typing import Optional


class RunMeshError(Exception):
    """Base class for all RunMesh errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(RunMeshError):
    """Raised when settings cannot produce a usable client configuration."""


class PolicyRejected(RunMeshError):
    """Raised when a policy denies a pending conversation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# ---------------------------------------------------------------------------
# Tool path
# ---------------------------------------------------------------------------
class ToolError(RunMeshError):
    """Base class for failures on the tool path."""

    def __init__(
        self, message: str, tool_name: str, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message, cause)
        self.tool_name = tool_name


class ToolNotFound(ToolError):
    """The requested tool is not registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}", tool_name)


class ToolInputInvalid(ToolError):
    """The tool arguments did not validate against the tool's input schema."""


class ToolExecutionFailed(ToolError):
    """The tool handler raised while running."""


# ---------------------------------------------------------------------------
# Schema / structured output
# ---------------------------------------------------------------------------
class SchemaValidationFailed(RunMeshError):
    """A value did not validate against a schema."""


class StructuredOutputInvalid(SchemaValidationFailed):
    """The model never produced a reply that parsed and validated against the schema."""

    def __init__(
        self, message: str, attempts: int = 0, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message, cause)
        self.attempts = attempts


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
class ChatRequestFailed(RunMeshError):
    """The chat client failed to complete a request."""
