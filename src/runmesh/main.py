"""
RunMesh entry point.

This file handles startup concerns (arg-parsing, settings, logging) and runs a single prompt through
a demo agent equipped with the built-in tools, either as a complete run or as a live event stream.
"""

import argparse
import asyncio
import logging
import sys

from runmesh.agent.agent import (
    Agent,
    create_agent,
)
from runmesh.common import (
    AnsiColors,
    colored_print,
)
from runmesh.config import settings
from runmesh.core.errors import RunMeshError
from runmesh.core.stream import (
    FinalEvent,
    TokenEvent,
    ToolCallEvent,
)
from runmesh.tools.builtin import default_registry

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a concise assistant. Use tools when helpful."
DEFAULT_PROMPT = "Explain RunMesh in 3 bullet points"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep transport chatter out of the agent logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


async def _run_once(agent: Agent, prompt: str) -> None:
    result = await agent.run(prompt)
    colored_print(result.content or "No response", AnsiColors.YELLOW)

    tool_names = [step.name for step in result.steps if step.type == "tool"]
    if tool_names:
        colored_print("\nTools used:", AnsiColors.BLUE)
        for name in tool_names:
            colored_print(f"  - {name}", AnsiColors.BLUE)


async def _run_stream(agent: Agent, prompt: str) -> None:
    stream = await agent.stream(prompt)
    finished = False
    async for event in stream:
        if isinstance(event, TokenEvent):
            colored_print(event.value, AnsiColors.YELLOW, end="")
        elif isinstance(event, ToolCallEvent):
            function = event.tool_call.function
            colored_print(
                f"\n[tool_call] {function.name if function else ''} "
                f"{function.arguments if function else ''}",
                AnsiColors.GREEN,
            )
        elif isinstance(event, FinalEvent):
            finished = True
            colored_print("\n\n[final]", AnsiColors.BLUE)
    if not finished:
        colored_print("\n[stream ended early]", AnsiColors.RED)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the RunMesh command line.

    Parses arguments, initializes logging and runs the prompt in either complete or streaming mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run a prompt through a RunMesh agent")
    parser.add_argument("prompt", nargs="*", help="Prompt text (default: a short demo prompt)")
    parser.add_argument("--stream", action="store_true", help="Print tokens as they arrive")
    parser.add_argument("--model", default=None, help="Model name (default from env)")
    parser.add_argument("--system", default=DEFAULT_SYSTEM_PROMPT, help="System prompt")
    parser.add_argument(
        "--max-tool-rounds",
        type=int,
        default=settings.MAX_TOOL_ROUNDS,
        help="Upper bound on tool round-trips per run (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level
    _init_logging(settings.LOG_LEVEL)

    prompt = " ".join(args.prompt) or DEFAULT_PROMPT
    logger.info("Starting RunMesh [%s mode]", "stream" if args.stream else "run")

    try:
        agent = create_agent(
            "runmesh-cli",
            args.model,
            system_prompt=args.system,
            tools=default_registry(),
            max_tool_rounds=args.max_tool_rounds,
            settings=settings,
        )
        colored_print(f"Prompt: {prompt}\n---", AnsiColors.DIM)
        runner = _run_stream if args.stream else _run_once
        asyncio.run(runner(agent, prompt))
    except RunMeshError as exc:
        logger.debug("Run failed", exc_info=True)
        colored_print(f"Error: {exc}", AnsiColors.RED)
        sys.exit(1)


if __name__ == "__main__":
    main()
