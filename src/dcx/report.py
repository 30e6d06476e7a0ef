"""Human-readable output for status, doctor and clean.

Every formatter returns a string; callers decide which stream it goes to.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from .categorize import MountStatus, was_label
from .engine import base_tag

UNKNOWN = "(unknown)"
NONE = "(none)"
NOTHING_TO_CLEAN = "Nothing to clean."
NO_WORKSPACES = "No active workspaces."

_STATUS_ROW = "{:<30} {:<30} {:<12} {}"


class StatusRow(BaseModel):
    workspace: Optional[str] = None
    mount: str
    container: Optional[str] = None
    state: str


class DoctorCheck(BaseModel):
    """One prerequisite check.

    ``detail`` is a version string on success and a fix hint on failure.
    """

    name: str
    passed: bool
    detail: Optional[str] = None


class CleanPlan(BaseModel):
    """Read-only description of what cleaning one relay entry involves."""

    mount_name: str
    mount_point: str
    workspace: Optional[str] = None
    status: MountStatus
    container_id: Optional[str] = None
    running: bool = False
    runtime_image_ref: Optional[str] = None
    has_base_tag: bool = False
    volumes: List[str] = Field(default_factory=list)
    is_mounted: bool = False

    @property
    def was(self) -> str:
        return was_label(self.status)


class CleanEntry(BaseModel):
    workspace: Optional[str] = None
    mount: str
    was: str
    action: str


def format_status_table(rows: Sequence[StatusRow]) -> str:
    if not rows:
        return NO_WORKSPACES
    lines = [_STATUS_ROW.format("WORKSPACE", "MOUNT", "CONTAINER", "STATE")]
    for row in rows:
        lines.append(
            _STATUS_ROW.format(
                row.workspace or UNKNOWN, row.mount, row.container or NONE, row.state
            )
        )
    return "\n".join(lines)


def format_doctor_report(checks: Sequence[DoctorCheck]) -> str:
    lines = ["Checking prerequisites..."]
    for check in checks:
        if check.passed:
            detail = f" ({check.detail})" if check.detail else ""
            lines.append(f"  ✓ {check.name}{detail}")
        else:
            lines.append(f"  ✗ {check.name}")
            if check.detail:
                lines.append(f"    Fix: {check.detail}")
    if checks and all(c.passed for c in checks):
        lines += ["", "All checks passed."]
    return "\n".join(lines)


def _pair(workspace: Optional[str], mount: str) -> str:
    return f"{workspace}  →  {mount}" if workspace else mount


def format_clean_summary(entries: Sequence[CleanEntry], active_left: int = 0) -> str:
    if active_left:
        header = (
            f"Cleaned {len(entries)} mounts "
            f"({active_left} active mounts left untouched):"
        )
    else:
        header = f"Cleaned {len(entries)} mounts:"
    lines = [header]
    for entry in entries:
        left = _pair(entry.workspace, entry.mount)
        lines.append(f"  {left:<52} was: {entry.was:<12} → {entry.action}")
    return "\n".join(lines)


def format_dry_run(plans: Sequence[CleanPlan]) -> str:
    if not plans:
        return NOTHING_TO_CLEAN
    lines = ["Would clean:"]
    for plan in plans:
        lines.append(f"  {plan.mount_name}  ({plan.was})")
        if plan.container_id:
            lines.append(f"    - Stop and remove container {plan.container_id}")
        if plan.runtime_image_ref:
            lines.append(f"    - Remove runtime image {plan.runtime_image_ref}")
        if plan.has_base_tag:
            lines.append(f"    - Remove base image tag {base_tag(plan.mount_name)}  [purge]")
        for volume in plan.volumes:
            lines.append(f"    - Remove volume {volume}  [purge]")
        if plan.is_mounted:
            lines.append("    - Unmount bindfs")
        lines.append("    - Remove mount directory")
    return "\n".join(lines)


def confirm_prompt(plans: Sequence[CleanPlan]) -> str:
    """Warning listing the running containers a clean would stop."""
    count = len(plans)
    plural = "" if count == 1 else "s"
    lines = [f"⚠ {count} active container{plural} will be stopped:"]
    for plan in plans:
        lines.append(
            f"  - {plan.workspace or UNKNOWN}  →  {plan.mount_name}  "
            f"(container: {plan.container_id or NONE})"
        )
    return "\n".join(lines)


def dry_run_plan(workspace: str, mount_display: str, config: Optional[str] = None) -> str:
    """``dcx up --dry-run`` output."""
    command = f"devcontainer up --workspace-folder {mount_display}"
    if config is not None:
        command += f" --config {config}"
    return f"Would mount: {workspace} → {mount_display}\nWould run: {command}"
