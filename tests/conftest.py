from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dcx.engine import DockerEngine
from dcx.mount_table import MountEntry
from dcx.settings import Settings
from dcx.signals import InterruptFlag


@pytest.fixture
def home(tmp_path, monkeypatch):
    """A fake $HOME so nothing touches the real relay directory."""
    home_dir = (tmp_path / "home").resolve()
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USER", "tester")
    monkeypatch.delenv("DCX_DEVCONTAINER_CONFIG_PATH", raising=False)
    monkeypatch.delenv("DCX_LOG_LEVEL", raising=False)
    return home_dir


@pytest.fixture
def settings(home):
    return Settings(home=home, user="tester")


@pytest.fixture
def relay(settings):
    settings.relay.mkdir()
    return settings.relay


@pytest.fixture
def project(home):
    """A workspace with a devcontainer config."""
    ws = home / "myproject"
    (ws / ".devcontainer").mkdir(parents=True)
    (ws / ".devcontainer" / "devcontainer.json").write_text(
        '{\n  // base image\n  "image": "mcr.microsoft.com/devcontainers/base:ubuntu",\n}\n',
        encoding="utf-8",
    )
    return ws.resolve()


@pytest.fixture
def engine():
    """
    DockerEngine stand-in: docker is up, nothing is running.
    """
    fake = MagicMock(spec=DockerEngine)
    fake.is_available.return_value = True
    fake.find_running.return_value = None
    fake.find_any.return_value = None
    fake.stop.return_value = None
    fake.container_volumes.return_value = []
    fake.base_tag_exists.return_value = False
    fake.runtime_image_ref.return_value = "vsc-myproject-abc-uid"
    fake.sweep_orphan_containers.return_value = 0
    fake.sweep_dangling_and_uid_images.return_value = 0
    fake.sweep_base_tags.return_value = 0
    fake.sweep_orphan_build_images.return_value = 0
    fake.sweep_dcx_volumes.return_value = 0
    return fake


@pytest.fixture
def mount_table(mocker):
    """
    Mutable list standing in for the live mount table.
    Append MountEntry objects to simulate mounts.
    """
    entries = []
    mocker.patch("dcx.host.read_mount_table", side_effect=lambda: list(entries))
    return entries


@pytest.fixture
def mounted(mount_table):
    def _add(source, target):
        mount_table.append(MountEntry(source=str(source), target=str(target)))

    return _add


@pytest.fixture
def inaccessible(mocker):
    """Paths added to this set fail is_accessible(); everything else passes."""
    dead = set()
    mocker.patch(
        "dcx.mounts.is_accessible", side_effect=lambda p: Path(p) not in dead
    )
    return dead


@pytest.fixture
def mock_mounts(mocker):
    """
    Mocks bind/unmount/rmdir so no bindfs or fusermount is ever spawned.
    """
    return MagicMock(
        bind_mount=mocker.patch("dcx.mounts.bind_mount"),
        unmount=mocker.patch("dcx.mounts.unmount"),
        remove_mount_dir=mocker.patch("dcx.mounts.remove_mount_dir"),
    )


@pytest.fixture(autouse=True)
def interrupt_flag(mocker):
    """Keep pytest's own SIGINT handling; commands get a private flag."""
    flag = InterruptFlag()
    mocker.patch("dcx.signals.install", return_value=flag)
    return flag
