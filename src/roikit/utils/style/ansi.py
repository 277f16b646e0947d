"""ANSI colour escape codes for terminal output.

Colours switch off when stdout is not a TTY or ``NO_COLOR`` is set, so the
markdown printed by the CLI stays clean when redirected to a file.
"""

import os
import sys


def _enabled() -> bool:
    if os.getenv("NO_COLOR"):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _code(value: str) -> str:
    return value if _enabled() else ""


reset = _code("\033[0m")
bold = _code("\033[1m")
red = _code("\033[31m")
green = _code("\033[32m")
yellow = _code("\033[33m")
blue = _code("\033[34m")
magenta = _code("\033[35m")
cyan = _code("\033[36m")
grey = _code("\033[90m")
