"""Classification of a relay entry from observed state."""

from __future__ import annotations

from enum import Enum


class MountStatus(str, Enum):
    ACTIVE = "active"  # healthy bindfs mount with a running container
    ORPHANED = "orphaned"  # healthy bindfs mount, no running container
    STALE = "stale"  # in the mount table but not stat-able (bindfs died)
    EMPTY = "empty"  # leftover directory, nothing mounted


def categorize(in_table: bool, accessible: bool, has_container: bool) -> MountStatus:
    if not in_table:
        return MountStatus.EMPTY
    if not accessible:
        return MountStatus.STALE
    if has_container:
        return MountStatus.ACTIVE
    return MountStatus.ORPHANED


_WAS_LABELS = {
    MountStatus.ACTIVE: "running",
    MountStatus.ORPHANED: "orphaned",
    MountStatus.STALE: "stale",
    MountStatus.EMPTY: "empty dir",
}

_STATE_LABELS = {
    MountStatus.ACTIVE: "running",
    MountStatus.ORPHANED: "orphaned",
    MountStatus.STALE: "stale mount",
    MountStatus.EMPTY: "empty dir",
}


def was_label(status: MountStatus) -> str:
    """Label for the ``was:`` column of the clean summary."""
    return _WAS_LABELS[status]


def state_label(status: MountStatus) -> str:
    """Label for the STATE column of ``dcx status``."""
    return _STATE_LABELS[status]
