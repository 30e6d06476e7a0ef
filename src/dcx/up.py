"""``dcx up``: mount the workspace into the relay and start its devcontainer."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from . import console, exit_codes, host, mounts, signals, workspace as ws
from .engine import DockerEngine, read_config_image
from .errors import (
    DcxError,
    EngineError,
    EngineUnavailable,
    MountCollisionError,
    MountError,
    UserAborted,
)
from .mount_table import find_mount_source
from .naming import hash_of, mount_name, tilde_path
from .report import dry_run_plan
from .runner import run_stream
from .settings import NETWORK_MODE_ENV, NetworkMode, Settings

logger = logging.getLogger(__name__)

ORCHESTRATOR = "devcontainer"


def orchestrator_args(mount_point: Path, config: Optional[Path]) -> list:
    args = ["up", "--workspace-folder", str(mount_point)]
    if config is not None:
        args += ["--config", str(config)]
    return args


def reconcile_mount(workspace: Path, mount_point: Path) -> bool:
    """Make ``mount_point`` a healthy bind of ``workspace``.

    Returns True when this call created the mount, False when an existing
    healthy mount of the same source is reused.
    """
    source = find_mount_source(host.read_mount_table(), mount_point)
    if mounts.is_accessible(mount_point):
        if source == str(workspace):
            logger.info("reusing existing mount %s", mount_point)
            return False
        if source is not None:
            raise MountCollisionError(str(workspace), source, hash_of(mount_point.name))
    elif source is not None:
        logger.info("unmounting stale mount %s", mount_point)
        try:
            mounts.unmount(mount_point)
        except DcxError as exc:
            raise MountError(f"Failed to unmount stale mount: {exc}") from exc

    mounts.bind_mount(workspace, mount_point)
    return True


def _tag_base_image(engine: DockerEngine, config: Path, name: str) -> None:
    image = read_config_image(config)
    if image is None:
        logger.debug("no top-level image in %s; skipping base tag", config)
        return
    try:
        tag = engine.tag_base(image, name)
    except EngineError as exc:
        console.note(f"could not tag base image {image}: {exc}")
        return
    logger.info("tagged %s as %s", image, tag)


def run_up(
    settings: Settings,
    workspace_folder: Optional[Path] = None,
    config: Optional[Path] = None,
    dry_run: bool = False,
    yes: bool = False,
    network: NetworkMode = NetworkMode.MINIMAL,
    engine: Optional[DockerEngine] = None,
) -> int:
    flag = signals.install()
    engine = engine or DockerEngine()
    if not engine.is_available():
        raise EngineUnavailable()

    workspace = ws.resolve_workspace(workspace_folder)
    relay = settings.relay
    ws.guard_recursion(workspace, relay)
    explicit = settings.resolve_config(config)
    config_path = ws.require_config(workspace, explicit)

    name = mount_name(workspace)
    mount_point = relay / name

    if dry_run:
        forwarded = str(config_path) if explicit else None
        print(dry_run_plan(str(workspace), tilde_path(mount_point, settings.home), forwarded))
        return exit_codes.SUCCESS

    try:
        relay.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MountError(f"Failed to create {relay}: {exc}") from exc

    if not yes and not ws.check_ownership(workspace, settings.user):
        raise UserAborted("Aborted.")

    console.step(f"Mounting {workspace} → {tilde_path(mount_point, settings.home)}")
    fresh = reconcile_mount(workspace, mount_point)

    if flag.is_set():
        if fresh:
            mounts.rollback(mount_point)
        raise DcxError("Interrupted before starting the devcontainer.")

    console.step("Starting devcontainer...")
    args = orchestrator_args(mount_point, config_path if explicit else None)
    env = dict(os.environ)
    env[NETWORK_MODE_ENV] = str(network)
    try:
        code = run_stream(ORCHESTRATOR, args, env=env)
    except DcxError:
        if fresh:
            mounts.rollback(mount_point)
        raise

    if code != 0 or flag.is_set():
        if fresh:
            mounts.rollback(mount_point)
        if code != 0:
            raise DcxError(f"devcontainer up failed (exit {code})")
        raise DcxError("Interrupted.")

    _tag_base_image(engine, config_path, name)
    console.step("Done.")
    return exit_codes.SUCCESS
