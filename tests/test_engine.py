"""DockerEngine tests: the docker CLI is replaced by a scripted ``run``."""

from pathlib import Path
from unittest.mock import patch

import pytest

from dcx.engine import (
    DockerCommands,
    DockerEngine,
    base_tag,
    is_runtime_image,
    read_config_image,
    strip_jsonc_comments,
)
from dcx.errors import CommandNotFoundError, EngineError
from dcx.runner import CaptureResult

MOUNT = Path("/home/u/.colima-mounts/dcx-proj-12345678")


def ok(stdout=""):
    return CaptureResult(stdout, "", 0)


def fail(stderr="boom", code=1):
    return CaptureResult("", stderr, code)


def scripted(responses):
    """side_effect that maps the docker subcommand tuple prefix to a result."""

    def _run(args):
        for prefix, result in responses:
            if tuple(args[: len(prefix)]) == prefix:
                return result
        return ok()

    return _run


@pytest.fixture
def commands():
    return DockerCommands()


class TestContainers:
    def test_is_available(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok()) as run:
            assert engine.is_available()
        run.assert_called_once_with(["info"])

    def test_is_available_false_when_docker_missing(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", side_effect=CommandNotFoundError("docker")):
            assert not engine.is_available()

    def test_find_running_uses_label_filter(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok("abc123\ndef456\n")) as run:
            assert engine.find_running(MOUNT) == "abc123"
        args = run.call_args[0][0]
        assert args[0] == "ps" and "-a" not in args
        assert f"label=devcontainer.local_folder={MOUNT}" in args

    def test_find_any_includes_stopped(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok("abc123\n")) as run:
            assert engine.find_any(MOUNT) == "abc123"
        assert "-a" in run.call_args[0][0]

    def test_find_returns_none_when_empty(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok("")):
            assert engine.find_any(MOUNT) is None

    def test_stop_is_idempotent(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok("")) as run:
            assert engine.stop(MOUNT) is None
        assert run.call_count == 1

    def test_stop_running_container(self, commands):
        engine = DockerEngine(commands)
        with patch.object(
            commands, "run", side_effect=scripted([(("ps",), ok("abc123\n"))])
        ) as run:
            assert engine.stop(MOUNT) == "abc123"
        run.assert_called_with(["stop", "abc123"])

    def test_remove_container_fails_loudly(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=fail("in use")):
            with pytest.raises(EngineError, match="docker rm abc123 failed"):
                engine.remove_container("abc123")

    def test_container_volumes_keep_prefix_only(self, commands):
        engine = DockerEngine(commands)
        with patch.object(
            commands, "run", return_value=ok("dcx-cache\nother\ndcx-home\ndcx-cache\n")
        ):
            assert engine.container_volumes("abc123") == ["dcx-cache", "dcx-home"]


class TestImages:
    def test_runtime_ref_prefers_uid_tag(self, commands):
        engine = DockerEngine(commands)
        responses = [
            (("inspect",), ok("sha256:feed\n")),
            (("image", "inspect"), ok("vsc-proj-abc:latest\nvsc-proj-abc-uid:latest\n")),
        ]
        with patch.object(commands, "run", side_effect=scripted(responses)):
            assert engine.runtime_image_ref("abc123") == "vsc-proj-abc-uid:latest"

    def test_runtime_ref_falls_back_to_hash(self, commands):
        engine = DockerEngine(commands)
        responses = [
            (("inspect",), ok("sha256:feed\n")),
            (("image", "inspect"), ok("vsc-proj-abc:latest\n")),
        ]
        with patch.object(commands, "run", side_effect=scripted(responses)):
            assert engine.runtime_image_ref("abc123") == "sha256:feed"

    def test_inspect_image_fails_loudly(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=fail("No such object")):
            with pytest.raises(EngineError):
                engine.inspect_image("gone")

    def test_remove_runtime_image_by_tag_without_force(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok()) as run:
            engine.remove_runtime_image("vsc-proj-abc-uid:latest")
        run.assert_called_once_with(["rmi", "vsc-proj-abc-uid:latest"])

    def test_remove_runtime_image_by_hash_with_force(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok()) as run:
            engine.remove_runtime_image("sha256:feed")
        run.assert_called_once_with(["rmi", "-f", "sha256:feed"])

    def test_tag_base(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok()) as run:
            assert engine.tag_base("ubuntu:24.04", "dcx-proj-12345678") == (
                "dcx-base:dcx-proj-12345678"
            )
        run.assert_called_once_with(["tag", "ubuntu:24.04", "dcx-base:dcx-proj-12345678"])

    def test_remove_base_tag_missing_is_success(self, commands):
        engine = DockerEngine(commands)
        with patch.object(
            commands, "run", return_value=fail("Error: No such image: dcx-base:x")
        ):
            engine.remove_base_tag("x")

    def test_remove_base_tag_other_failure_raises(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=fail("conflict")):
            with pytest.raises(EngineError):
                engine.remove_base_tag("x")

    def test_is_runtime_image(self):
        assert is_runtime_image("vsc-proj-abc-uid:latest")
        assert is_runtime_image("vsc-proj-abc-uid")
        assert not is_runtime_image("vsc-proj-abc:latest")
        assert base_tag("n") == "dcx-base:n"


class TestSweeps:
    def test_sweep_base_tags_counts_removed(self, commands):
        engine = DockerEngine(commands)
        responses = [
            (("images",), ok("dcx-base:dcx-a-1\ndcx-base:dcx-b-2\nother:dcx\n")),
            (("rmi", "dcx-base:dcx-b-2"), fail()),
        ]
        with patch.object(commands, "run", side_effect=scripted(responses)):
            assert engine.sweep_base_tags() == 1

    def test_sweep_orphan_containers(self, commands):
        engine = DockerEngine(commands)
        with patch.object(
            commands, "run", side_effect=scripted([(("ps",), ok("c1\nc2\n"))])
        ) as run:
            assert engine.sweep_orphan_containers() == 2
        first = run.call_args_list[0][0][0]
        assert "label=devcontainer.local_folder" in first
        assert "status=exited" in first

    def test_sweep_uid_images_skips_referenced(self, commands):
        engine = DockerEngine(commands)
        responses = [
            (("images", "--filter", "dangling=true"), ok("")),
            (("ps",), ok("vsc-used-uid:latest\n")),
            (("images",), ok("vsc-used-uid:latest\nvsc-gone-uid:latest\nvsc-gone:latest\n")),
        ]
        with patch.object(commands, "run", side_effect=scripted(responses)) as run:
            assert engine.sweep_dangling_and_uid_images() == 1
        run.assert_any_call(["rmi", "vsc-gone-uid:latest"])

    def test_sweep_build_images_keeps_those_with_runtime(self, commands):
        engine = DockerEngine(commands)
        responses = [
            (("images",), ok("vsc-a:latest\nvsc-a-uid:latest\nvsc-b:latest\nubuntu:24.04\n")),
            (("ps",), ok("")),
        ]
        with patch.object(commands, "run", side_effect=scripted(responses)) as run:
            assert engine.sweep_orphan_build_images() == 1
        run.assert_any_call(["rmi", "vsc-b:latest"])

    def test_list_volumes_filters_prefix(self, commands):
        engine = DockerEngine(commands)
        with patch.object(commands, "run", return_value=ok("dcx-a\nmy-dcx-b\ndcx-c\n")):
            assert engine.list_volumes("dcx-") == ["dcx-a", "dcx-c"]

    def test_sweep_volumes(self, commands):
        engine = DockerEngine(commands)
        responses = [(("volume", "ls"), ok("dcx-a\ndcx-b\n"))]
        with patch.object(commands, "run", side_effect=scripted(responses)):
            assert engine.sweep_dcx_volumes() == 2


class TestJsonc:
    def test_ignores_image_in_comments(self, tmp_path):
        config = tmp_path / "devcontainer.json"
        config.write_text(
            "{\n"
            '  // "image": "commented:line",\n'
            '  /* "image": "commented:block" */\n'
            '  "image": "real:1.0",\n'
            "}\n",
            encoding="utf-8",
        )
        assert read_config_image(config) == "real:1.0"

    def test_comment_markers_inside_strings_survive(self):
        text = '{"url": "http://example.com/*x*/", "q": "say \\"//hi\\""}'
        assert strip_jsonc_comments(text) == text

    def test_missing_image_field(self, tmp_path):
        config = tmp_path / "devcontainer.json"
        config.write_text('{"build": {"dockerfile": "Dockerfile"}}', encoding="utf-8")
        assert read_config_image(config) is None

    def test_missing_file(self, tmp_path):
        assert read_config_image(tmp_path / "nope.json") is None

    def test_unparseable_file(self, tmp_path):
        config = tmp_path / "devcontainer.json"
        config.write_text("{ not json", encoding="utf-8")
        assert read_config_image(config) is None
