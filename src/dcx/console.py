"""User-facing output on stderr and logging setup.

Machine-readable results (tables, plans, "Nothing to do") are printed to stdout
by the commands themselves; everything here goes to stderr.
"""

from __future__ import annotations

import logging
import sys

ARROW = "→"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )


def format_step(msg: str) -> str:
    return f"{ARROW} {msg}"


def step(msg: str) -> None:
    print(format_step(msg), file=sys.stderr)


def warn(msg: str) -> None:
    print(f"Warning: {msg}", file=sys.stderr)


def note(msg: str) -> None:
    print(f"Note: {msg}", file=sys.stderr)


def error(msg: str) -> None:
    print(msg, file=sys.stderr)


def confirm(question: str) -> bool:
    """Ask ``question [y/N]`` on stderr; only ``y``/``yes`` count as consent."""
    sys.stderr.write(f"{question} [y/N] ")
    sys.stderr.flush()
    answer = sys.stdin.readline()
    return answer.strip().lower() in ("y", "yes")
