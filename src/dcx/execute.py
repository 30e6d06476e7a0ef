"""``dcx exec``: run a command inside the devcontainer of a mounted workspace."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from . import console, host, mounts, signals, workspace as ws
from .engine import DockerEngine
from .errors import DcxError, EngineUnavailable
from .mount_table import find_mount_source
from .naming import mount_name
from .runner import run_stream
from .settings import Settings

ORCHESTRATOR = "devcontainer"


def no_mount_error(workspace: Path) -> str:
    return f"No mount found for {workspace}. Run `dcx up` first."


STALE_MOUNT_ERROR = "Mount is stale. Run `dcx up` to remount."


def exec_args(mount_point: Path, config: Optional[Path], command: Sequence[str]) -> List[str]:
    args = ["exec", "--workspace-folder", str(mount_point)]
    if config is not None:
        args += ["--config", str(config)]
    if command:
        args += ["--", *command]
    return args


def run_exec(
    settings: Settings,
    workspace_folder: Optional[Path] = None,
    config: Optional[Path] = None,
    command: Sequence[str] = (),
    engine: Optional[DockerEngine] = None,
) -> int:
    """Returns the exit code of ``devcontainer exec`` unchanged."""
    signals.install()
    engine = engine or DockerEngine()
    if not engine.is_available():
        raise EngineUnavailable()

    workspace = ws.resolve_workspace(workspace_folder)
    console.step(f"Resolving workspace path: {workspace}")
    ws.guard_recursion(workspace, settings.relay)

    mount_point = settings.relay / mount_name(workspace)
    if find_mount_source(host.read_mount_table(), mount_point) is None:
        raise DcxError(no_mount_error(workspace))
    if not mounts.is_accessible(mount_point):
        raise DcxError(STALE_MOUNT_ERROR)

    console.step("Running exec in container...")
    return run_stream(ORCHESTRATOR, exec_args(mount_point, settings.resolve_config(config), command))
