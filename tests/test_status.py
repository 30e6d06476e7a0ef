import json

import pytest
import yaml

from dcx.errors import EngineUnavailable
from dcx.status import run_status

A = "dcx-a-aaaaaaaa"
B = "dcx-b-bbbbbbbb"
C = "dcx-c-cccccccc"


@pytest.fixture
def populated(relay, engine, mounted, inaccessible):
    for name in (A, B, C):
        (relay / name).mkdir()
    mounted("/w/a", relay / A)
    mounted("/w/b", relay / B)
    inaccessible.add(relay / B)
    engine.find_running.side_effect = lambda mp: "abc123" if mp.name == A else None
    return relay


def test_empty_relay(settings, relay, engine, mount_table, capsys):
    assert run_status(settings, engine=engine) == 0
    captured = capsys.readouterr()
    assert captured.out == "No active workspaces.\n"
    assert "→ Scanning workspaces..." in captured.err


def test_table(settings, populated, engine, capsys):
    run_status(settings, engine=engine)
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["WORKSPACE", "MOUNT", "CONTAINER", "STATE"]
    assert lines[1].split() == ["/w/a", A, "abc123", "running"]
    assert lines[2].split() == ["/w/b", B, "(none)", "stale", "mount"]
    assert lines[3].split() == ["(unknown)", C, "(none)", "empty", "dir"]
    assert lines[1].index(A) == lines[0].index("MOUNT") == 31


def test_json(settings, populated, engine, capsys):
    run_status(settings, fmt="json", engine=engine)
    rows = json.loads(capsys.readouterr().out)
    assert rows[0] == {"workspace": "/w/a", "mount": A, "container": "abc123", "state": "running"}
    assert rows[2]["workspace"] is None


def test_yaml(settings, populated, engine, capsys):
    run_status(settings, fmt="yaml", engine=engine)
    rows = yaml.safe_load(capsys.readouterr().out)
    assert [r["state"] for r in rows] == ["running", "stale mount", "empty dir"]


def test_engine_down(settings, relay, engine):
    engine.is_available.return_value = False
    with pytest.raises(EngineUnavailable):
        run_status(settings, engine=engine)
