import pytest

from dcx.__main__ import build_parser
from dcx.completions import describe_parser, render_completions, run_completions
from dcx.errors import UsageError


@pytest.fixture(scope="module")
def parser():
    return build_parser()


def test_describe_parser(parser):
    context = describe_parser(parser)
    names = [c["name"] for c in context["commands"]]
    assert names == ["up", "exec", "down", "clean", "status", "doctor", "completions"]
    clean = next(c for c in context["commands"] if c["name"] == "clean")
    assert {o["flag"] for o in clean["options"]} == {
        "--workspace-folder",
        "--all",
        "--yes",
        "--purge",
        "--dry-run",
    }
    completions = next(c for c in context["commands"] if c["name"] == "completions")
    assert completions["choices"] == ["bash", "zsh", "fish"]
    assert context["path_flags"] == ["--config", "--workspace-folder"]


def test_bash(parser):
    script = render_completions("bash", parser)
    assert "complete -F _dcx dcx" in script
    assert "--config|--workspace-folder)" in script
    assert "--purge" in script
    assert "bash zsh fish" in script


def test_zsh(parser):
    script = render_completions("zsh", parser)
    assert script.startswith("#compdef dcx")
    assert "'up:Create bindfs mount and start devcontainer'" in script
    assert "_files" in script


def test_fish(parser):
    script = render_completions("fish", parser)
    assert "complete -c dcx -n '__fish_use_subcommand' -a clean" in script
    assert "__fish_seen_subcommand_from clean' -l purge" in script
    assert "-l workspace-folder -r -F" in script
    assert "-a 'bash zsh fish'" in script


def test_unknown_shell(parser):
    with pytest.raises(UsageError):
        render_completions("powershell", parser)


def test_run_completions_prints(parser, capsys):
    assert run_completions("bash", parser) == 0
    assert capsys.readouterr().out.startswith("# bash completion for dcx")
