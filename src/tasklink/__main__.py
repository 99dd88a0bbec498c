"""CLI entry point for tasklink."""

import argparse
from pathlib import Path

from . import __version__
from .config import Settings
from .logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="tasklink",
        description="Mirror markdown tasks to GitHub Issues and Shortcut Stories",
    )
    parser.add_argument(
        "--task-root",
        type=Path,
        default=None,
        help="Path to project root containing tasklink.yml (default: current directory)",
    )
    parser.add_argument(
        "--generate",
        action="store_true",
        help="Generate default tasklink.yml and task directory, then exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Sync tasks to remote trackers")
    sync_parser.add_argument(
        "task_id",
        nargs="?",
        default=None,
        help="Only sync the root task that owns this task",
    )
    provider_group = sync_parser.add_mutually_exclusive_group()
    provider_group.add_argument(
        "--github",
        dest="provider",
        action="store_const",
        const="github",
        help="Only sync to GitHub Issues",
    )
    provider_group.add_argument(
        "--shortcut",
        dest="provider",
        action="store_const",
        const="shortcut",
        help="Only sync to Shortcut",
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would sync without contacting any tracker",
    )

    close_parser = subparsers.add_parser(
        "close", help="Close a task's remote items and detach its links"
    )
    close_parser.add_argument("task_id", help="Task to close remotely")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)


def main() -> None:
    """Main entry point."""
    args = parse_args()

    settings_kwargs: dict = {}
    if args.task_root:
        settings_kwargs["project_root"] = args.task_root
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file

    settings = Settings(**settings_kwargs)
    setup_logging(settings.verbose, settings.log_file)

    if args.generate:
        from .cli.generate import run_generate

        raise SystemExit(run_generate(settings.project_root))

    if args.command == "sync":
        from .cli.sync import run_sync

        raise SystemExit(
            run_sync(
                settings.project_root,
                args.task_id,
                args.provider or settings.provider,
                args.dry_run,
            )
        )

    if args.command == "close":
        from .cli.close import run_close

        raise SystemExit(run_close(settings.project_root, args.task_id))

    build_parser().print_help()
    raise SystemExit(2)


if __name__ == "__main__":
    main()
