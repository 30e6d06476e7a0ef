"""Per-OS differences: where the mount table comes from and how to unmount."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List

from . import mount_table
from .errors import CommandNotFoundError
from .mount_table import MountEntry
from .runner import run_capture

logger = logging.getLogger(__name__)

PROC_MOUNTS = Path("/proc/mounts")


def is_macos() -> bool:
    return sys.platform == "darwin"


def unmount_prog() -> str:
    return "umount" if is_macos() else "fusermount"


def unmount_args(mount_point: Path) -> List[str]:
    if is_macos():
        return [str(mount_point)]
    return ["-u", str(mount_point)]


def bindfs_install_hint() -> str:
    return "brew install bindfs" if is_macos() else "sudo apt install bindfs"


def devcontainer_install_hint() -> str:
    return "npm install -g @devcontainers/cli"


def colima_config_path(home: Path) -> Path:
    if is_macos():
        return home / ".colima" / "default" / "colima.yaml"
    return home / ".config" / "colima" / "default" / "colima.yaml"


def read_mount_table() -> List[MountEntry]:
    """bindfs entries of the live mount table; ``[]`` if it cannot be read."""
    if is_macos():
        try:
            result = run_capture("mount", [])
        except CommandNotFoundError as exc:
            logger.debug("cannot read mount table: %s", exc)
            return []
        if not result.ok:
            logger.debug("mount exited %d: %s", result.returncode, result.stderr.strip())
            return []
        return mount_table.parse_mount_output(result.stdout)

    try:
        text = PROC_MOUNTS.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("cannot read %s: %s", PROC_MOUNTS, exc)
        return []
    return mount_table.parse_proc_mounts(text)
