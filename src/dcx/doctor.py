"""``dcx doctor``: check that everything dcx shells out to is in place."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import List, Optional

from . import colima, exit_codes, host
from .errors import CommandNotFoundError
from .naming import RELAY_DIRNAME, relay_dir
from .report import DoctorCheck, format_doctor_report
from .runner import CaptureResult, run_capture
from .settings import Settings

RELAY_DISPLAY = f"~/{RELAY_DIRNAME}"
WRITE_TEST = f"touch {RELAY_DISPLAY}/.dcx-write-test && rm {RELAY_DISPLAY}/.dcx-write-test"


def parse_version_str(output: str) -> Optional[str]:
    """First ``MAJOR.MINOR[.PATCH...]`` token of ``output``, without a leading ``v``."""
    for word in output.split():
        candidate = word.lstrip("v").rstrip(",;.")
        parts = candidate.split(".")
        if len(parts) >= 2 and all(p.isascii() and p.isdigit() for p in parts):
            return candidate
    return None


def _which(prog: str) -> bool:
    return shutil.which(prog) is not None


def _capture(prog: str, args: List[str]) -> Optional[CaptureResult]:
    try:
        return run_capture(prog, args)
    except CommandNotFoundError:
        return None


def _version_of(prog: str) -> Optional[str]:
    result = _capture(prog, ["--version"])
    if result is None:
        return None
    return parse_version_str(result.stdout) or parse_version_str(result.stderr)


def check_installed(prog: str, label: str, hint: str) -> DoctorCheck:
    if not _which(prog):
        return DoctorCheck(name=label, passed=False, detail=hint)
    return DoctorCheck(name=label, passed=True, detail=_version_of(prog))


def check_docker() -> DoctorCheck:
    result = _capture("docker", ["info", "--format", "{{.ServerVersion}}"])
    if result is None or not result.ok:
        return DoctorCheck(
            name="Docker available", passed=False, detail="Is Docker/Colima running?"
        )
    return DoctorCheck(
        name="Docker available", passed=True, detail=parse_version_str(result.stdout)
    )


def check_colima() -> DoctorCheck:
    result = _capture("colima", ["status"])
    if result is None or not result.ok:
        return DoctorCheck(name="Colima running", passed=False, detail="Run: colima start")
    version = parse_version_str(result.stdout) or parse_version_str(result.stderr)
    return DoctorCheck(name="Colima running", passed=True, detail=version)


def check_unmount_tool() -> DoctorCheck:
    prog = host.unmount_prog()
    return DoctorCheck(name=f"{prog} installed", passed=_which(prog))


def check_relay_exists(home: Path) -> DoctorCheck:
    relay = relay_dir(home)
    if relay.is_dir():
        return DoctorCheck(name=f"{RELAY_DISPLAY} exists on host", passed=True)
    return DoctorCheck(
        name=f"{RELAY_DISPLAY} exists on host",
        passed=False,
        detail=f"Run: mkdir -p {relay}",
    )


def check_colima_config(home: Path) -> DoctorCheck:
    name = f"{RELAY_DISPLAY} listed in colima.yaml (writable)"
    path = host.colima_config_path(home)
    mounts = colima.load_colima_mounts(path)
    if mounts is None:
        return DoctorCheck(name=name, passed=False, detail=f"Cannot read {path}")
    entry = colima.relay_mount(mounts, home)
    if entry is None:
        return DoctorCheck(
            name=name,
            passed=False,
            detail=f"Add '- location: {RELAY_DISPLAY}' with 'writable: true' to mounts in {path}",
        )
    if not entry.writable:
        return DoctorCheck(
            name=name,
            passed=False,
            detail=f"Set 'writable: true' for {RELAY_DISPLAY} in {path}",
        )
    return DoctorCheck(name=name, passed=True)


def check_relay_in_vm() -> DoctorCheck:
    name = f"{RELAY_DISPLAY} mounted in VM (writable)"
    listed = _capture("colima", ["ssh", "--", "ls", RELAY_DISPLAY])
    if listed is None or not listed.ok:
        return DoctorCheck(
            name=name,
            passed=False,
            detail=f"Add {RELAY_DISPLAY} to Colima mounts in colima.yaml and run: colima start",
        )
    written = _capture("colima", ["ssh", "--", "sh", "-c", WRITE_TEST])
    if written is None or not written.ok:
        return DoctorCheck(
            name=name,
            passed=False,
            detail=f"Check Colima mount permissions for {RELAY_DISPLAY}",
        )
    return DoctorCheck(name=name, passed=True)


def collect_checks(home: Path) -> List[DoctorCheck]:
    return [
        check_installed("bindfs", "bindfs installed", host.bindfs_install_hint()),
        check_installed(
            "devcontainer", "devcontainer CLI installed", host.devcontainer_install_hint()
        ),
        check_docker(),
        check_colima(),
        check_unmount_tool(),
        check_relay_exists(home),
        check_colima_config(home),
        check_relay_in_vm(),
    ]


def run_doctor(settings: Settings) -> int:
    checks = collect_checks(settings.home)
    print(format_doctor_report(checks))
    if all(check.passed for check in checks):
        return exit_codes.SUCCESS
    return exit_codes.RUNTIME_ERROR
