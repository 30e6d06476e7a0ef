"""``dcx completions``: shell completion scripts rendered from the CLI parser."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader

from . import exit_codes
from .errors import UsageError

SHELLS = ("bash", "zsh", "fish")
TEMPLATES_DIR = Path(__file__).parent / "templates" / "completions"
PATH_METAVAR = "PATH"


def _zsh_escape(text: str) -> str:
    return text.replace("'", "'\\''").replace(":", "\\:")


def _fish_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'")


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["zsh_escape"] = _zsh_escape
    env.filters["fish_escape"] = _fish_escape
    return env


def _options(parser: argparse.ArgumentParser) -> List[Dict[str, Any]]:
    options = []
    for action in parser._actions:
        longs = [s for s in action.option_strings if s.startswith("--")]
        if not longs or isinstance(action, argparse._HelpAction):
            continue
        options.append(
            {
                "flag": longs[0],
                "name": longs[0][2:],
                "help": action.help or "",
                "path": action.metavar == PATH_METAVAR,
            }
        )
    return options


def _choices(parser: argparse.ArgumentParser) -> List[str]:
    values: List[str] = []
    for action in parser._actions:
        if not action.option_strings and action.choices:
            values.extend(str(c) for c in action.choices)
    return values


def describe_parser(parser: argparse.ArgumentParser) -> Dict[str, Any]:
    """Template context: subcommands with their options, plus global flags."""
    commands = []
    for action in parser._actions:
        if not isinstance(action, argparse._SubParsersAction):
            continue
        helps = {choice.dest: choice.help or "" for choice in action._choices_actions}
        for name, sub in action.choices.items():
            commands.append(
                {
                    "name": name,
                    "help": helps.get(name, ""),
                    "options": _options(sub),
                    "choices": _choices(sub),
                }
            )
    path_flags = sorted(
        {opt["flag"] for cmd in commands for opt in cmd["options"] if opt["path"]}
    )
    return {
        "prog": parser.prog,
        "commands": commands,
        "global_options": _options(parser),
        "path_flags": path_flags,
    }


def render_completions(shell: str, parser: argparse.ArgumentParser) -> str:
    if shell not in SHELLS:
        raise UsageError(f"Unsupported shell: {shell}")
    template = _environment().get_template(f"{shell}.jinja2")
    return template.render(**describe_parser(parser))


def run_completions(shell: str, parser: argparse.ArgumentParser) -> int:
    print(render_completions(shell, parser), end="")
    return exit_codes.SUCCESS
