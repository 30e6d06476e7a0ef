"""Exception taxonomy for dcx.

Library code raises these; ``dcx.__main__.main`` prints the message and turns
the exception into the matching exit code.
"""

from __future__ import annotations

from . import exit_codes


class DcxError(RuntimeError):
    """Base error. Subclasses pick the exit code."""

    exit_code = exit_codes.RUNTIME_ERROR


class UsageError(DcxError):
    exit_code = exit_codes.USAGE_ERROR


class UserAborted(DcxError):
    exit_code = exit_codes.USER_ABORTED


class ConfigError(DcxError):
    """Environment is missing something dcx cannot run without (e.g. HOME)."""


class CommandNotFoundError(DcxError):
    exit_code = exit_codes.PREREQ_NOT_FOUND

    def __init__(self, prog: str, reason: str = "") -> None:
        self.prog = prog
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to run {prog}{detail}")


class EngineError(DcxError):
    """A docker command exited nonzero."""


class EngineUnavailable(EngineError):
    def __init__(self) -> None:
        super().__init__("Docker is not available. Is Colima running?")


class MountError(DcxError):
    """bindfs, the unmount tool, or a relay directory operation failed."""


class MountCollisionError(MountError):
    """The mount point for a workspace is already bound to another source."""

    def __init__(self, workspace: str, found_source: str, digest: str) -> None:
        self.workspace = workspace
        self.found_source = found_source
        self.digest = digest
        super().__init__(
            "✗ Mount point already exists but points to wrong source!\n"
            f"   Expected: {workspace}\n"
            f"   Found:    {found_source}\n"
            "\n"
            f"Hash collision detected (both hash to {digest}).\n"
            "This is extremely rare (~1 in 4 billion).\n"
            "Run `dcx clean` to reset and retry."
        )
