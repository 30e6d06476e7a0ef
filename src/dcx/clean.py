"""``dcx clean``: tear down relay entries and the docker objects tied to them.

Each entry is planned first (read-only) and then executed in a fixed order:
stop container, remove container and its runtime image, drop the base tag and
volumes under ``--purge``, unmount, remove the directory. A failing entry is
recorded and the loop moves on; failures are printed once all entries ran.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from . import console, exit_codes, host, mounts, signals, workspace as ws
from .categorize import MountStatus, categorize
from .engine import DockerEngine
from .errors import DcxError, EngineError, EngineUnavailable, UserAborted
from .mount_table import MountEntry, find_mount_source
from .naming import mount_name, scan_relay
from .report import (
    NOTHING_TO_CLEAN,
    CleanEntry,
    CleanPlan,
    confirm_prompt,
    format_clean_summary,
    format_dry_run,
)
from .settings import Settings

logger = logging.getLogger(__name__)

INTERRUPTED_NOTICE = "Signal received, stopping after current entry."


def plan_entry(
    engine: DockerEngine, mount_point: Path, table: List[MountEntry], purge: bool
) -> CleanPlan:
    source = find_mount_source(table, mount_point)
    in_table = source is not None
    running = engine.find_running(mount_point)
    container = running or engine.find_any(mount_point)

    runtime_ref = None
    volumes: List[str] = []
    if container is not None:
        try:
            runtime_ref = engine.runtime_image_ref(container)
        except EngineError as exc:
            logger.debug("cannot resolve image of %s: %s", container, exc)
        volumes = engine.container_volumes(container) if purge else []

    return CleanPlan(
        mount_name=mount_point.name,
        mount_point=str(mount_point),
        workspace=source,
        status=categorize(in_table, mounts.is_accessible(mount_point), running is not None),
        container_id=container,
        running=running is not None,
        runtime_image_ref=runtime_ref,
        has_base_tag=purge and engine.base_tag_exists(mount_point.name),
        volumes=volumes,
        is_mounted=in_table,
    )


def clean_entry(engine: DockerEngine, plan: CleanPlan, purge: bool) -> str:
    """Execute ``plan``; returns the action label for the summary.

    Raises DcxError for failures that leave the entry in place.
    """
    mount_point = Path(plan.mount_point)
    actions = []

    if engine.stop(mount_point) is not None:
        actions.append("stopped")

    if plan.container_id is not None:
        # The image reference can only be inspected while the container exists.
        try:
            runtime_ref = engine.runtime_image_ref(plan.container_id)
        except EngineError as exc:
            logger.debug("falling back to planned image ref: %s", exc)
            runtime_ref = plan.runtime_image_ref
        engine.remove_container(plan.container_id)
        if runtime_ref is not None:
            try:
                engine.remove_runtime_image(runtime_ref)
            except EngineError as exc:
                console.note(f"runtime image {runtime_ref} kept: {exc}")

    if purge:
        try:
            engine.remove_base_tag(plan.mount_name)
        except EngineError as exc:
            console.note(str(exc))
        for volume in plan.volumes:
            try:
                engine.remove_volume(volume)
            except EngineError as exc:
                console.note(str(exc))

    if plan.is_mounted:
        mounts.unmount(mount_point)
        actions.append("unmounted")
    mounts.remove_mount_dir(mount_point)

    return ", ".join(actions) if actions else "removed"


def _select_targets(
    settings: Settings, workspace_folder: Optional[Path], clean_all: bool
) -> Tuple[List[Path], List[Path]]:
    """(entries to clean, other relay entries)."""
    workspace = ws.resolve_workspace(workspace_folder)
    ws.guard_recursion(workspace, settings.relay)
    entries = scan_relay(settings.relay)
    if clean_all:
        return entries, []
    own = mount_name(workspace)
    return (
        [p for p in entries if p.name == own],
        [p for p in entries if p.name != own],
    )


def _sweep(engine: DockerEngine, purge: bool) -> None:
    console.step("Sweeping leftover containers and images...")
    counts = {
        "orphan containers": engine.sweep_orphan_containers(),
        "runtime images": engine.sweep_dangling_and_uid_images(),
    }
    if purge:
        counts["base tags"] = engine.sweep_base_tags()
        counts["build images"] = engine.sweep_orphan_build_images()
        counts["volumes"] = engine.sweep_dcx_volumes()
    for what, count in counts.items():
        if count:
            logger.info("removed %d %s", count, what)


def run_clean(
    settings: Settings,
    workspace_folder: Optional[Path] = None,
    clean_all: bool = False,
    yes: bool = False,
    purge: bool = False,
    dry_run: bool = False,
    engine: Optional[DockerEngine] = None,
) -> int:
    flag = signals.install()
    engine = engine or DockerEngine()
    if not engine.is_available():
        raise EngineUnavailable()

    console.step("Scanning relay directory...")
    targets, others = _select_targets(settings, workspace_folder, clean_all)
    table = host.read_mount_table()
    plans = [plan_entry(engine, p, table, purge) for p in targets]

    if dry_run:
        print(format_dry_run(plans))
        return exit_codes.SUCCESS

    running = [p for p in plans if p.running]
    if running and not yes:
        console.error(confirm_prompt(running))
        console.error("")
        if not console.confirm("Continue?"):
            raise UserAborted("Aborted.")

    active_left = sum(
        1
        for p in others
        if categorize(
            find_mount_source(table, p) is not None,
            mounts.is_accessible(p),
            engine.find_running(p) is not None,
        )
        is MountStatus.ACTIVE
    )

    cleaned: List[CleanEntry] = []
    failures: List[str] = []
    stopped_early = False
    for plan in plans:
        console.step(f"Cleaning {plan.mount_name}...")
        try:
            action = clean_entry(engine, plan, purge)
        except DcxError as exc:
            failures.append(f"{plan.mount_point}: {exc}")
        else:
            cleaned.append(
                CleanEntry(
                    workspace=plan.workspace,
                    mount=plan.mount_name,
                    was=plan.was,
                    action=action,
                )
            )
        if flag.is_set():
            console.error(INTERRUPTED_NOTICE)
            stopped_early = True
            break

    if clean_all and not stopped_early:
        _sweep(engine, purge)

    if cleaned:
        print(format_clean_summary(cleaned, active_left))
    elif not plans:
        print(NOTHING_TO_CLEAN)

    for failure in failures:
        console.error(f"Error: {failure}")

    if failures or stopped_early:
        return exit_codes.RUNTIME_ERROR
    return exit_codes.SUCCESS
