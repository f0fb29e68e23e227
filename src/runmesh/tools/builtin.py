"""Built-in demo tools used by the command-line entry point."""

from runmesh.tools import ToolRegistry


def default_registry() -> ToolRegistry:
    """A fresh registry holding the built-in tools."""
    registry = ToolRegistry()

    @registry.tool("echo")
    def echo_tool(text: str) -> str:
        """Echo the input text back to the caller."""
        return text

    return registry
