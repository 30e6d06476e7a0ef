"""Ctrl+C handling: the first SIGINT is graceful, the second is not.

The first signal only sets a flag. Commands poll it at safe points (between
clean entries, after captured subprocess calls) and finish in-flight work such
as an unmount before exiting. A second signal exits immediately with 130.
"""

from __future__ import annotations

import os
import signal
from typing import Optional

from . import exit_codes


class InterruptFlag:
    def __init__(self) -> None:
        self._set = False

    def __bool__(self) -> bool:
        return self._set

    def is_set(self) -> bool:
        return self._set

    def handle(self, signum, frame) -> None:
        if self._set:
            os._exit(exit_codes.INTERRUPTED)
        self._set = True


_flag: Optional[InterruptFlag] = None


def install() -> InterruptFlag:
    """Register the SIGINT handler once and return the process-wide flag."""
    global _flag
    if _flag is None:
        _flag = InterruptFlag()
        signal.signal(signal.SIGINT, _flag.handle)
    return _flag


def interrupted() -> bool:
    return _flag is not None and _flag.is_set()
