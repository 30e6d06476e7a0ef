"""Command-line entry point for dcx."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__, exit_codes, signals
from .clean import run_clean
from .completions import SHELLS, run_completions
from .console import configure_logging
from .doctor import run_doctor
from .down import run_down
from .errors import DcxError
from .execute import run_exec
from .runner import run_stream
from .settings import NetworkMode, Settings
from .status import FORMATS, run_status
from .up import run_up

ORCHESTRATOR = "devcontainer"
MANAGED_COMMANDS = ("up", "exec", "down", "clean", "status", "doctor", "completions")

DESCRIPTION = (
    "Mount native workspaces into Colima and run devcontainers on them.\n\n"
    "Managed subcommands: up, exec, down, clean, status, doctor, completions\n"
    "All other subcommands are forwarded to `devcontainer` unchanged."
)


def _network_mode(value: str) -> NetworkMode:
    try:
        return NetworkMode(value.lower())
    except ValueError:
        choices = ", ".join(str(m) for m in NetworkMode)
        raise argparse.ArgumentTypeError(
            f"invalid network mode '{value}' (choose from {choices})"
        ) from None


def _workspace_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workspace-folder",
        type=Path,
        metavar="PATH",
        help="Workspace folder path (default: current directory)",
    )


def _config_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        help="Path to devcontainer.json (default: auto-detected)",
    )


def cmd_up(args: argparse.Namespace, settings: Settings) -> int:
    return run_up(
        settings,
        workspace_folder=args.workspace_folder,
        config=args.config,
        dry_run=args.dry_run,
        yes=args.yes,
        network=args.network,
    )


def cmd_exec(args: argparse.Namespace, settings: Settings) -> int:
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    return run_exec(
        settings,
        workspace_folder=args.workspace_folder,
        config=args.config,
        command=command,
    )


def cmd_down(args: argparse.Namespace, settings: Settings) -> int:
    return run_down(settings, workspace_folder=args.workspace_folder)


def cmd_clean(args: argparse.Namespace, settings: Settings) -> int:
    return run_clean(
        settings,
        workspace_folder=args.workspace_folder,
        clean_all=args.all,
        yes=args.yes,
        purge=args.purge,
        dry_run=args.dry_run,
    )


def cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    return run_status(settings, fmt=args.format)


def cmd_doctor(args: argparse.Namespace, settings: Settings) -> int:
    return run_doctor(settings)


def cmd_completions(args: argparse.Namespace, settings: Settings) -> int:
    return run_completions(args.shell, build_parser())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dcx",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log external commands to stderr"
    )
    subparsers = parser.add_subparsers(dest="command_name", required=True)

    up_parser = subparsers.add_parser("up", help="Create bindfs mount and start devcontainer")
    _workspace_arg(up_parser)
    _config_arg(up_parser)
    up_parser.add_argument(
        "--dry-run", action="store_true", help="Print what would happen without doing it"
    )
    up_parser.add_argument(
        "--yes", action="store_true", help="Skip confirmation prompts (e.g. for non-owned directories)"
    )
    up_parser.add_argument(
        "--network",
        type=_network_mode,
        choices=list(NetworkMode),
        default=NetworkMode.MINIMAL,
        help="Network isolation level passed to the container (default: minimal)",
    )
    up_parser.set_defaults(func=cmd_up)

    exec_parser = subparsers.add_parser("exec", help="Run a command inside the devcontainer")
    _workspace_arg(exec_parser)
    _config_arg(exec_parser)
    exec_parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command and arguments to run inside the container",
    )
    exec_parser.set_defaults(func=cmd_exec)

    down_parser = subparsers.add_parser("down", help="Stop container and unmount workspace")
    _workspace_arg(down_parser)
    down_parser.set_defaults(func=cmd_down)

    clean_parser = subparsers.add_parser("clean", help="Clean up dcx-managed mounts")
    _workspace_arg(clean_parser)
    clean_parser.add_argument(
        "--all",
        action="store_true",
        help="Clean all dcx-managed workspaces (default: current workspace only)",
    )
    clean_parser.add_argument("--yes", action="store_true", help="Skip confirmation prompts")
    clean_parser.add_argument(
        "--purge",
        action="store_true",
        help="Also remove base image tags, build images and dcx volumes",
    )
    clean_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be cleaned without doing it"
    )
    clean_parser.set_defaults(func=cmd_clean)

    status_parser = subparsers.add_parser(
        "status", help="Show status of all dcx-managed workspaces"
    )
    status_parser.add_argument(
        "--format", choices=FORMATS, default="table", help="Output format (default: table)"
    )
    status_parser.set_defaults(func=cmd_status)

    doctor_parser = subparsers.add_parser(
        "doctor", help="Validate prerequisites (bindfs, devcontainer, Docker, Colima)"
    )
    doctor_parser.set_defaults(func=cmd_doctor)

    completions_parser = subparsers.add_parser(
        "completions", help="Generate shell completion script"
    )
    completions_parser.add_argument("shell", choices=SHELLS, help="Target shell")
    completions_parser.set_defaults(func=cmd_completions)

    return parser


def _exit_status(code: int) -> int:
    # subprocess reports death by signal N as -N
    return 128 - code if code < 0 else code


def passthrough(argv: List[str]) -> int:
    """Forward an unmanaged subcommand to ``devcontainer`` as-is."""
    signals.install()
    return _exit_status(run_stream(ORCHESTRATOR, argv))


def _is_passthrough(argv: List[str]) -> bool:
    return bool(argv) and not argv[0].startswith("-") and argv[0] not in MANAGED_COMMANDS


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    try:
        if _is_passthrough(argv):
            configure_logging(Settings.from_env().log_level)
            return passthrough(argv)

        parser = build_parser()
        args = parser.parse_args(argv)
        settings = Settings.from_env()
        configure_logging("DEBUG" if args.verbose else settings.log_level)
        result = args.func(args, settings)
    except DcxError as exc:
        print(str(exc), file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        return exit_codes.INTERRUPTED
    return _exit_status(result) if isinstance(result, int) else exit_codes.SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
