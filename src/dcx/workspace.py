"""Workspace resolution and the checks every engine runs before touching it."""

from __future__ import annotations

import os
import pwd
from pathlib import Path
from typing import Optional

from . import console
from .errors import UsageError
from .naming import is_managed_path

RECURSION_MESSAGE = (
    "Cannot use a dcx-managed mount point as a workspace. "
    "Use the original workspace path instead."
)


def resolve_workspace(given: Optional[Path]) -> Path:
    """Canonical absolute workspace path; ``given`` defaults to the cwd."""
    path = Path(given) if given is not None else Path.cwd()
    try:
        return path.expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise UsageError(f"Workspace path does not exist: {path}") from exc


def guard_recursion(workspace: Path, relay: Path) -> None:
    if is_managed_path(workspace, relay):
        raise UsageError(RECURSION_MESSAGE)


def find_devcontainer_config(workspace: Path) -> Optional[Path]:
    """``.devcontainer/devcontainer.json`` first, then ``.devcontainer.json``."""
    for candidate in (
        workspace / ".devcontainer" / "devcontainer.json",
        workspace / ".devcontainer.json",
    ):
        if candidate.is_file():
            return candidate
    return None


def require_config(workspace: Path, explicit: Optional[Path]) -> Path:
    if explicit is not None:
        config = Path(explicit).expanduser()
        if not config.is_file():
            raise UsageError(f"Devcontainer config not found: {config}")
        return config.resolve()
    found = find_devcontainer_config(workspace)
    if found is None:
        raise UsageError(f"No devcontainer configuration found in {workspace}.")
    return found


def owner_uid(path: Path) -> int:
    return path.stat().st_uid


def username_for_uid(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return f"UID {uid}"


def confirm_non_owned(workspace: Path, owner: int, current: int, current_name: str) -> bool:
    owner_name = username_for_uid(owner)
    console.error(f"⚠️  Directory {workspace} is owned by {owner_name} (UID {owner})")
    console.error(f"    Current user is {current_name} (UID {current})")
    console.error("")
    console.error(f"    In the container, you'll run as {current_name} ({current}).")
    console.error(
        "    You'll have read/write access only if the directory permissions allow it."
    )
    console.error("")
    return console.confirm("Proceed?")


def check_ownership(workspace: Path, current_name: str) -> bool:
    """True when the workspace is ours or the user agreed to continue anyway."""
    current = os.getuid()
    owner = owner_uid(workspace)
    if owner == current:
        return True
    return confirm_non_owned(workspace, owner, current, current_name)
