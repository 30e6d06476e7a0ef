"""Reader for the Colima VM config (``colima.yaml``)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .naming import RELAY_DIRNAME

logger = logging.getLogger(__name__)

RELAY_LOCATION = f"~/{RELAY_DIRNAME}"


class ColimaMount(BaseModel):
    location: str
    writable: bool = False


class ColimaConfig(BaseModel):
    mounts: List[ColimaMount] = Field(default_factory=list)


def parse_colima_mounts(text: str) -> List[ColimaMount]:
    """Mounts listed in a colima.yaml document; ``[]`` if it does not parse."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        logger.debug("invalid colima.yaml: %s", exc)
        return []
    if not isinstance(data, dict):
        return []
    try:
        # colima writes ``mounts: []`` but older configs leave it null
        return ColimaConfig.model_validate({"mounts": data.get("mounts") or []}).mounts
    except ValidationError as exc:
        logger.debug("unexpected mounts section in colima.yaml: %s", exc)
        return []


def load_colima_mounts(path: Path) -> Optional[List[ColimaMount]]:
    """None when the config file cannot be read."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return None
    return parse_colima_mounts(text)


def expand_tilde(location: str, home: Path) -> Path:
    if location == "~":
        return home
    if location.startswith("~/"):
        return home / location[2:]
    return Path(location)


def is_relay_location(location: str, home: Path) -> bool:
    """``~/.colima-mounts`` (trailing slash allowed) or its expanded form."""
    normalized = location.rstrip("/")
    if normalized == RELAY_LOCATION:
        return True
    return expand_tilde(normalized, home) == home / RELAY_DIRNAME


def relay_mount(mounts: List[ColimaMount], home: Path) -> Optional[ColimaMount]:
    for mount in mounts:
        if is_relay_location(mount.location, home):
            return mount
    return None
