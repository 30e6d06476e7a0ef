"""Spawning external programs.

Two modes: ``run_capture`` for decision-making (output is data, nonzero exit is
not an error) and ``run_stream`` for commands whose progress the user should see.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .errors import CommandNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CaptureResult:
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def display_cmd(prog: str, args: Sequence[str]) -> str:
    """``prog arg1 arg2`` for dry-run output."""
    return " ".join([prog, *args])


def run_capture(prog: str, args: Sequence[str]) -> CaptureResult:
    """Run ``prog`` with stdout/stderr captured.

    The child gets its own session so a terminal Ctrl+C reaches only dcx, which
    polls its interruption flag once the call returns.

    Raises CommandNotFoundError if the program cannot be spawned.
    """
    logger.debug("$ %s", display_cmd(prog, args))
    try:
        proc = subprocess.run(
            [prog, *args],
            check=False,
            capture_output=True,
            text=True,
            errors="replace",
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise CommandNotFoundError(prog, exc.strerror or str(exc)) from exc
    logger.debug("%s exited %d", prog, proc.returncode)
    return CaptureResult(proc.stdout, proc.stderr, proc.returncode)


def run_stream(
    prog: str, args: Sequence[str], env: Optional[Dict[str, str]] = None
) -> int:
    """Run ``prog`` attached to the terminal and return its exit code.

    The child shares dcx's process group, so Ctrl+C reaches it directly.
    A child killed by a signal reports a negative code, which callers treat as
    failure like any other nonzero value.
    """
    logger.debug("$ %s (streaming)", display_cmd(prog, args))
    try:
        proc = subprocess.run([prog, *args], check=False, env=env)
    except OSError as exc:
        raise CommandNotFoundError(prog, exc.strerror or str(exc)) from exc
    logger.debug("%s exited %d", prog, proc.returncode)
    return proc.returncode
