"""Docker queries and housekeeping for dcx-managed containers and images.

Containers created by ``devcontainer up`` carry the label
``devcontainer.local_folder=<mount point>``, which is how every query here finds
the container belonging to a relay entry. Base images are aliased as
``dcx-base:<mount name>`` during ``dcx up`` so ``dcx clean --purge`` can find
them later without re-reading devcontainer.json.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set

from .errors import CommandNotFoundError, EngineError
from .runner import CaptureResult, run_capture

logger = logging.getLogger(__name__)

DOCKER = "docker"
LOCAL_FOLDER_LABEL = "devcontainer.local_folder"
BASE_TAG_NAMESPACE = "dcx-base"
VOLUME_PREFIX = "dcx-"
BUILD_IMAGE_PREFIX = "vsc-"
RUNTIME_IMAGE_SUFFIX = "-uid"


@dataclass
class DockerCommands:
    """Thin wrapper to allow mocking in tests."""

    prog: str = DOCKER

    def run(self, args: Sequence[str]) -> CaptureResult:
        return run_capture(self.prog, list(args))


def _lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _repository(ref: str) -> str:
    """``repo`` of ``repo:tag`` (ignoring a registry port colon)."""
    head, sep, tail = ref.rpartition(":")
    if sep and "/" not in tail:
        return head
    return ref


def is_runtime_image(ref: str) -> bool:
    """Runtime images are the UID-remapped ``vsc-*-uid`` images."""
    return _repository(ref).endswith(RUNTIME_IMAGE_SUFFIX) or ref.endswith(
        RUNTIME_IMAGE_SUFFIX
    )


def base_tag(name: str) -> str:
    return f"{BASE_TAG_NAMESPACE}:{name}"


@dataclass
class DockerEngine:
    commands: DockerCommands = field(default_factory=DockerCommands)

    def _run(self, *args: str) -> CaptureResult:
        return self.commands.run(list(args))

    def _check(self, what: str, *args: str) -> CaptureResult:
        result = self._run(*args)
        if not result.ok:
            raise EngineError(f"{what} failed (exit {result.returncode}): {result.stderr.strip()}")
        return result

    # -- containers ---------------------------------------------------------

    def is_available(self) -> bool:
        try:
            return self._run("info").ok
        except CommandNotFoundError:
            return False

    def _find(self, mount_point: Path, include_stopped: bool) -> Optional[str]:
        args = ["ps"]
        if include_stopped:
            args.append("-a")
        args += [
            "--filter",
            f"label={LOCAL_FOLDER_LABEL}={mount_point}",
            "--format",
            "{{.ID}}",
        ]
        result = self._run(*args)
        if not result.ok:
            logger.debug("docker ps failed: %s", result.stderr.strip())
            return None
        ids = _lines(result.stdout)
        return ids[0] if ids else None

    def find_running(self, mount_point: Path) -> Optional[str]:
        return self._find(mount_point, include_stopped=False)

    def find_any(self, mount_point: Path) -> Optional[str]:
        return self._find(mount_point, include_stopped=True)

    def stop(self, mount_point: Path) -> Optional[str]:
        """Stop the running container for ``mount_point``, if there is one.

        Returns the stopped container ID, or None when nothing was running.
        """
        container = self.find_running(mount_point)
        if container is None:
            return None
        self._check(f"docker stop {container}", "stop", container)
        return container

    def remove_container(self, container: str) -> None:
        self._check(f"docker rm {container}", "rm", container)

    def container_volumes(self, container: str, prefix: str = VOLUME_PREFIX) -> List[str]:
        """Named volumes with ``prefix`` mounted by ``container``."""
        result = self._run(
            "inspect",
            "--format",
            '{{range .Mounts}}{{if eq .Type "volume"}}{{.Name}}\n{{end}}{{end}}',
            container,
        )
        if not result.ok:
            return []
        return sorted({v for v in _lines(result.stdout) if v.startswith(prefix)})

    # -- images -------------------------------------------------------------

    def inspect_image(self, container: str) -> str:
        """Content hash (``sha256:...``) of the image ``container`` runs."""
        result = self._check(
            f"docker inspect {container}", "inspect", "--format={{.Image}}", container
        )
        return result.stdout.strip()

    def image_tags(self, image: str) -> List[str]:
        result = self._run(
            "image", "inspect", "--format={{range .RepoTags}}{{.}}\n{{end}}", image
        )
        if not result.ok:
            return []
        return _lines(result.stdout)

    def runtime_image_ref(self, container: str) -> str:
        """Prefer the ``*-uid`` repo tag of the container's image, else its hash.

        Must be called while the container still exists.
        """
        image_id = self.inspect_image(container)
        for tag in self.image_tags(image_id):
            if is_runtime_image(tag):
                return tag
        return image_id

    def remove_runtime_image(self, ref: str) -> None:
        # Removing by tag only drops the tag when the build image shares the
        # same hash; a raw hash has no such alias and needs force.
        if ref.startswith("sha256:"):
            self._check(f"docker rmi {ref}", "rmi", "-f", ref)
        else:
            self._check(f"docker rmi {ref}", "rmi", ref)

    def tag_base(self, image: str, name: str) -> str:
        tag = base_tag(name)
        self._check(f"docker tag {image} {tag}", "tag", image, tag)
        return tag

    def base_tag_exists(self, name: str) -> bool:
        return self._run("image", "inspect", base_tag(name)).ok

    def remove_base_tag(self, name: str) -> None:
        tag = base_tag(name)
        result = self._run("rmi", tag)
        if result.ok or "No such image" in result.stderr:
            return
        raise EngineError(
            f"docker rmi {tag} failed (exit {result.returncode}): {result.stderr.strip()}"
        )

    def list_images(self, *filters: str) -> List[str]:
        args = ["images", "--format", "{{.Repository}}:{{.Tag}}"]
        for flt in filters:
            args += ["--filter", flt]
        result = self._run(*args)
        if not result.ok:
            logger.debug("docker images failed: %s", result.stderr.strip())
            return []
        return _lines(result.stdout)

    def referenced_images(self) -> Set[str]:
        """Image references used by any container, running or not."""
        result = self._run("ps", "-a", "--format", "{{.Image}}")
        if not result.ok:
            return set()
        return set(_lines(result.stdout))

    def _remove_each(self, what: str, refs: Sequence[str], *rm_args: str) -> int:
        removed = 0
        for ref in refs:
            result = self._run(*rm_args, ref)
            if result.ok:
                removed += 1
            else:
                logger.info("could not remove %s %s: %s", what, ref, result.stderr.strip())
        return removed

    def sweep_base_tags(self) -> int:
        tags = [
            t for t in self.list_images(f"reference={BASE_TAG_NAMESPACE}")
            if _repository(t) == BASE_TAG_NAMESPACE
        ]
        return self._remove_each("base tag", tags, "rmi")

    def sweep_orphan_containers(self) -> int:
        result = self._run(
            "ps",
            "-a",
            "--filter",
            f"label={LOCAL_FOLDER_LABEL}",
            "--filter",
            "status=exited",
            "--format",
            "{{.ID}}",
        )
        if not result.ok:
            return 0
        return self._remove_each("container", _lines(result.stdout), "rm")

    def sweep_dangling_and_uid_images(self) -> int:
        removed = 0
        dangling = self._run("images", "--filter", "dangling=true", "--quiet")
        if dangling.ok:
            removed += self._remove_each("dangling image", _lines(dangling.stdout), "rmi")

        in_use = self.referenced_images()
        uid_images = [
            ref for ref in self.list_images()
            if is_runtime_image(ref) and ref not in in_use and _repository(ref) not in in_use
        ]
        removed += self._remove_each("runtime image", uid_images, "rmi")
        return removed

    def sweep_orphan_build_images(self) -> int:
        """Remove ``vsc-*`` build images whose ``-uid`` image is gone and unused."""
        images = self.list_images()
        repos = {_repository(ref) for ref in images}
        in_use = self.referenced_images()
        orphans = []
        for ref in images:
            repo = _repository(ref)
            if not repo.startswith(BUILD_IMAGE_PREFIX) or is_runtime_image(ref):
                continue
            if repo + RUNTIME_IMAGE_SUFFIX in repos:
                continue
            if ref in in_use or repo in in_use:
                continue
            orphans.append(ref)
        return self._remove_each("build image", orphans, "rmi")

    # -- volumes ------------------------------------------------------------

    def list_volumes(self, prefix: str = VOLUME_PREFIX) -> List[str]:
        result = self._run("volume", "ls", "--filter", f"name={prefix}", "--format", "{{.Name}}")
        if not result.ok:
            logger.debug("docker volume ls failed: %s", result.stderr.strip())
            return []
        # The name filter is a substring match.
        return [v for v in _lines(result.stdout) if v.startswith(prefix)]

    def remove_volume(self, name: str) -> None:
        self._check(f"docker volume rm {name}", "volume", "rm", name)

    def sweep_dcx_volumes(self) -> int:
        return self._remove_each("volume", self.list_volumes(VOLUME_PREFIX), "volume", "rm")


# -- devcontainer.json ----------------------------------------------------------


def strip_jsonc_comments(text: str) -> str:
    """Drop ``//`` and ``/* */`` comments, leaving string literals untouched."""
    out: List[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _strip_trailing_commas(text: str) -> str:
    """Remove commas directly before ``}`` or ``]`` outside string literals."""
    out: List[str] = []
    in_string = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch == ",":
            j = i + 1
            while j < n and text[j] in " \t\r\n":
                j += 1
            if j >= n or text[j] not in "}]":
                out.append(ch)
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def read_config_image(config_path: Path) -> Optional[str]:
    """Top-level ``"image"`` of a devcontainer.json (JSONC); None if absent."""
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("cannot read %s: %s", config_path, exc)
        return None
    try:
        data = json.loads(_strip_trailing_commas(strip_jsonc_comments(raw)))
    except json.JSONDecodeError as exc:
        logger.debug("cannot parse %s: %s", config_path, exc)
        return None
    if not isinstance(data, dict):
        return None
    image = data.get("image")
    return image if isinstance(image, str) and image else None
