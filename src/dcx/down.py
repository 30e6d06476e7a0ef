"""``dcx down``: stop the devcontainer and release the workspace mount."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from . import console, exit_codes, host, mounts, signals, workspace as ws
from .engine import DockerEngine
from .errors import CommandNotFoundError, DcxError, EngineUnavailable, MountError, UsageError
from .mount_table import find_mount_source
from .naming import mount_name, tilde_path
from .settings import Settings

WORKSPACE_MISSING = (
    "Workspace directory does not exist. Use `dcx clean` to remove stale mounts."
)


def nothing_to_do(workspace: Path) -> str:
    return f"No mount found for {workspace}. Nothing to do."


def run_down(
    settings: Settings,
    workspace_folder: Optional[Path] = None,
    engine: Optional[DockerEngine] = None,
) -> int:
    flag = signals.install()
    engine = engine or DockerEngine()
    if not engine.is_available():
        raise EngineUnavailable()

    try:
        workspace = ws.resolve_workspace(workspace_folder)
    except UsageError as exc:
        raise UsageError(WORKSPACE_MISSING) from exc
    console.step(f"Resolving workspace path: {workspace}")
    ws.guard_recursion(workspace, settings.relay)

    mount_point = settings.relay / mount_name(workspace)
    if find_mount_source(host.read_mount_table(), mount_point) is None:
        print(nothing_to_do(workspace))
        return exit_codes.SUCCESS

    console.step("Stopping devcontainer...")
    engine.stop(mount_point)

    # The unmount always runs once the container is stopped.
    was_interrupted = flag.is_set()
    if was_interrupted:
        console.error("Signal received, finishing unmount...")

    console.step(f"Unmounting {tilde_path(mount_point, settings.home)}...")
    try:
        mounts.unmount(mount_point)
    except CommandNotFoundError as exc:
        raise MountError(str(exc)) from exc
    mounts.remove_mount_dir(mount_point)

    if was_interrupted or flag.is_set():
        raise DcxError("Interrupted.")
    console.step("Done.")
    return exit_codes.SUCCESS
