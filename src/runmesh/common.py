"""Terminal output helpers for the command-line entry point."""

import sys
from enum import Enum
from typing import Any


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    DIM = "\033[2m"


_RESET = "\033[0m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color; plain text when stdout is not a terminal.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    kwargs.setdefault("flush", True)
    if sys.stdout.isatty():
        print(f"{color.value}{text}{_RESET}", *args, **kwargs)
    else:
        print(text, *args, **kwargs)
