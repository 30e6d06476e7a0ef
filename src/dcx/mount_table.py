"""Parsers for the OS mount table, filtered to bindfs entries."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel

# ``fuse`` shows up for mounts whose bindfs process has died.
PROC_FSTYPES = {"fuse.bindfs", "fuse"}
BSD_FSTYPES = {"bindfs", "fuse"}

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


class MountEntry(BaseModel):
    source: str
    target: str
    fstype: str = "fuse.bindfs"


def decode_octal_escapes(field: str) -> str:
    r"""Undo the kernel's ``\040``-style escaping of mount table fields."""
    if "\\" not in field:
        return field
    raw = _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)
    # Escapes are byte values; re-interpret so multi-byte UTF-8 stays intact.
    try:
        return raw.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return raw


def parse_proc_mounts(text: str) -> List[MountEntry]:
    """Parse ``/proc/mounts``: ``<source> <target> <fstype> <options> <dump> <pass>``."""
    entries: List[MountEntry] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        source, target, fstype = parts[0], parts[1], parts[2]
        if fstype not in PROC_FSTYPES:
            continue
        entries.append(
            MountEntry(
                source=decode_octal_escapes(source),
                target=decode_octal_escapes(target),
                fstype=fstype,
            )
        )
    return entries


def parse_mount_output(text: str) -> List[MountEntry]:
    """Parse BSD/macOS ``mount`` output: ``<source> on <target> (<fstype>, ...)``."""
    entries: List[MountEntry] = []
    for line in text.splitlines():
        if " on " not in line or "(" not in line:
            continue
        source, rest = line.split(" on ", 1)
        target, _, opts = rest.rpartition(" (")
        if not target:
            continue
        fstype = opts.rstrip(")").split(",")[0].strip()
        if fstype not in BSD_FSTYPES:
            continue
        entries.append(
            MountEntry(source=source.strip(), target=target.strip(), fstype=fstype)
        )
    return entries


def find_mount_source(entries: Sequence[MountEntry], target: Path) -> Optional[str]:
    target_str = str(target)
    for entry in entries:
        if entry.target == target_str:
            return entry.source
    return None
