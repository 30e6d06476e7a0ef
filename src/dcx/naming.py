"""Deterministic names and paths for dcx-managed mounts."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import List

MOUNT_PREFIX = "dcx-"
RELAY_DIRNAME = ".colima-mounts"
MAX_NAME_LEN = 30
HASH_LEN = 8


def sanitize_name(name: str) -> str:
    """Replace every non-ASCII-alphanumeric character with ``-`` and cap at 30."""
    cleaned = "".join(
        ch if ch.isascii() and ch.isalnum() else "-" for ch in name
    )
    return cleaned[:MAX_NAME_LEN]


def compute_hash(abs_path: str) -> str:
    return hashlib.sha256(abs_path.encode("utf-8")).hexdigest()[:HASH_LEN]


def mount_name(abs_path: Path) -> str:
    """Return ``dcx-<sanitized basename>-<8 hex>`` for an absolute path.

    The root directory has no basename, which yields ``dcx--<hash>``.
    """
    return f"{MOUNT_PREFIX}{sanitize_name(abs_path.name)}-{compute_hash(str(abs_path))}"


def hash_of(name: str) -> str:
    """The hash suffix of a mount name."""
    return name[-HASH_LEN:]


def relay_dir(home: Path) -> Path:
    return home / RELAY_DIRNAME


def is_managed_path(path: Path, relay: Path) -> bool:
    """True if ``path`` is ``<relay>/dcx-*`` or anything below it."""
    try:
        rel = path.relative_to(relay)
    except ValueError:
        return False
    parts = rel.parts
    return bool(parts) and parts[0].startswith(MOUNT_PREFIX)


def scan_relay(relay: Path) -> List[Path]:
    """All ``dcx-*`` entries of the relay directory, sorted by name."""
    try:
        entries = list(relay.iterdir())
    except OSError:
        return []
    return sorted(
        (p for p in entries if p.name.startswith(MOUNT_PREFIX)),
        key=lambda p: p.name,
    )


def tilde_path(path: Path, home: Path) -> str:
    """Abbreviate ``path`` with ``~`` when it lives under ``home``."""
    try:
        rel = path.relative_to(home)
    except ValueError:
        return str(path)
    rel_str = rel.as_posix()
    return "~" if rel_str == "." else f"~/{rel_str}"
