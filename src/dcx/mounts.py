"""bindfs mount primitives shared by up, down and clean."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from . import console, host
from .errors import DcxError, MountError
from .runner import run_capture

logger = logging.getLogger(__name__)

MOUNTER = "bindfs"


def is_accessible(mount_point: Path) -> bool:
    """stat() succeeds; a dead bindfs process makes this fail with ENOTCONN."""
    try:
        os.stat(mount_point)
    except OSError:
        return False
    return True


def bind_mount(workspace: Path, mount_point: Path) -> None:
    """Create ``mount_point`` and bind ``workspace`` onto it.

    The directory is removed again if bindfs fails so no stray dir is left.
    """
    try:
        mount_point.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MountError(f"Failed to create {mount_point}: {exc}") from exc

    result = run_capture(MOUNTER, ["--no-allow-other", str(workspace), str(mount_point)])
    if not result.ok:
        try:
            mount_point.rmdir()
        except OSError as exc:
            logger.debug("could not remove %s after failed mount: %s", mount_point, exc)
        raise MountError(
            f"bindfs mount failed (exit {result.returncode}): {result.stderr.strip()}"
        )


def unmount(mount_point: Path) -> None:
    prog = host.unmount_prog()
    result = run_capture(prog, host.unmount_args(mount_point))
    if not result.ok:
        raise MountError(
            f"{prog} failed (exit {result.returncode}): {result.stderr.strip()}"
        )


def remove_mount_dir(mount_point: Path) -> None:
    try:
        mount_point.rmdir()
    except OSError as exc:
        raise MountError(f"Failed to remove {mount_point}: {exc.strerror or exc}") from exc


def rollback(mount_point: Path) -> None:
    """Unmount and remove a mount created by this run; report, never raise."""
    try:
        unmount(mount_point)
    except DcxError as exc:
        console.warn(f"rollback unmount failed: {exc}")
    try:
        remove_mount_dir(mount_point)
    except MountError as exc:
        console.warn(f"rollback rmdir failed: {exc}")
    console.error("Mount rolled back.")
