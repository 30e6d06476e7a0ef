"""``dcx status``: list managed mounts and what state each one is in."""

from __future__ import annotations

import json
from typing import List, Optional

import yaml

from . import console, exit_codes, host, mounts
from .categorize import categorize, state_label
from .engine import DockerEngine
from .errors import EngineUnavailable, UsageError
from .mount_table import find_mount_source
from .naming import scan_relay
from .report import StatusRow, format_status_table
from .settings import Settings

FORMATS = ("table", "json", "yaml")


def collect_rows(settings: Settings, engine: DockerEngine) -> List[StatusRow]:
    table = host.read_mount_table()
    rows = []
    for mount_point in scan_relay(settings.relay):
        source = find_mount_source(table, mount_point)
        container = engine.find_running(mount_point)
        status = categorize(
            source is not None, mounts.is_accessible(mount_point), container is not None
        )
        rows.append(
            StatusRow(
                workspace=source,
                mount=mount_point.name,
                container=container,
                state=state_label(status),
            )
        )
    return rows


def render(rows: List[StatusRow], fmt: str) -> str:
    if fmt == "table":
        return format_status_table(rows)
    data = [row.model_dump() for row in rows]
    if fmt == "json":
        return json.dumps(data, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False).rstrip("\n")
    raise UsageError(f"Unknown status format: {fmt}")


def run_status(
    settings: Settings, fmt: str = "table", engine: Optional[DockerEngine] = None
) -> int:
    engine = engine or DockerEngine()
    if not engine.is_available():
        raise EngineUnavailable()
    console.step("Scanning workspaces...")
    print(render(collect_rows(settings, engine), fmt))
    return exit_codes.SUCCESS
