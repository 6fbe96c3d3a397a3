#!/usr/bin/env python3
"""
gitdiffy CLI Interface

Usage:
    gitdiffy [options] commit     Propose commits for the current changes and
                                  confirm each one before committing.
    gitdiffy [options] watch      Watch the repository and commit, branch and
                                  push automatically after a stretch of
                                  continuous work.

Options:
    -l, --license KEY             License key for the message generation service
    -p, --branchPrefix PREFIX     Prefix for auto-commit branches (default: gitdiffy)
    --pushRemote REMOTE           Remote to push auto-commit branches to (default: origin)
    --maxWorkDuration DURATION    Continuous work before an auto commit (default: 10m)
    --config FILE                 Config file (default: ./.gitdiffy.yaml)
    --api-url URL                 Message generation endpoint
    --timeout SECONDS             Timeout for the message generation request
    -r, --root PATH               Path to the Git repository (default: current directory)
    --no-color                    Disable colored output
    -v, --verbose                 Increase log verbosity (repeatable)
    --version                     Show version information
"""

import argparse
import math
import sys
from pathlib import Path
from typing import List, Optional

from rich.markup import escape

from gitdiffy import __version__
from gitdiffy.api import GenerationClient
from gitdiffy.applicator import CommitApplicator
from gitdiffy.config import Config, load_config, parse_duration
from gitdiffy.errors import ConfigError, GitdiffyError, NoChangesError
from gitdiffy.models import ApplyMode
from gitdiffy.monitor import WorkMonitor
from gitdiffy.planner import CommitPlanner, print_staged_files
from gitdiffy.utils import configure_logging, console, disable_color
from gitdiffy.vcs import GitAdapter, VcsAdapter

__all__ = ["create_argument_parser", "create_config_from_args", "main_cli",
           "run_commit", "run_watch"]


def _duration_argument(value: str):
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if not math.isfinite(number) or number <= 0:
        raise argparse.ArgumentTypeError("must be a finite number greater than zero")
    return number


def add_version_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version information"
    )


def add_directory_argument(parser: argparse.ArgumentParser, default=None) -> None:
    parser.add_argument(
        "-r", "--root",
        type=Path,
        default=default,
        help="Path to the Git repository (default: current directory)"
    )


def add_config_arguments(parser: argparse.ArgumentParser, default=None) -> None:
    """Add the options that feed the Config value.

    ``default`` is None on the top-level parser and ``argparse.SUPPRESS`` on the
    subcommand parsers, so an option given after the subcommand overrides one
    given before it without the subcommand resetting it.
    """
    parser.add_argument(
        "-l", "--license",
        default=default,
        help="License key for the message generation service"
    )
    parser.add_argument(
        "-p", "--branchPrefix", "--branch-prefix",
        dest="branch_prefix",
        default=default,
        help="Prefix for branches created by watch mode (default: gitdiffy)"
    )
    parser.add_argument(
        "--pushRemote", "--push-remote",
        dest="push_remote",
        default=default,
        help="Git remote to push to (default: origin)"
    )
    parser.add_argument(
        "--maxWorkDuration", "--max-work-duration",
        dest="max_work_duration",
        type=_duration_argument,
        default=default,
        help="Continuous work time before an auto commit, e.g. 10m or 1h30m (default: 10m)"
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        default=default,
        help="Config file (default: ./.gitdiffy.yaml)"
    )
    parser.add_argument(
        "--api-url",
        dest="api_url",
        default=default,
        help="Message generation endpoint"
    )
    parser.add_argument(
        "--timeout",
        dest="request_timeout",
        type=_positive_float,
        default=default,
        help="Seconds to wait for the message generation service (default: 30)"
    )


def add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be specified multiple times)"
    )


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitdiffy",
        description="Gitdiffy automates smart commits based on code activity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_version_argument(parser)
    add_directory_argument(parser)
    add_config_arguments(parser)
    add_output_arguments(parser)

    subparsers = parser.add_subparsers(dest="command", metavar="{commit,watch}")
    commit_parser = subparsers.add_parser(
        "commit",
        help="Generate commit messages and confirm each before committing",
    )
    watch_parser = subparsers.add_parser(
        "watch",
        help="Watch the repo periodically and commit automatically",
    )
    for sub in (commit_parser, watch_parser):
        add_directory_argument(sub, default=argparse.SUPPRESS)
        add_config_arguments(sub, default=argparse.SUPPRESS)

    return parser


def create_config_from_args(args: argparse.Namespace) -> Config:
    """Merge CLI flags over the config file and environment."""
    overrides = {
        "license": args.license,
        "branch_prefix": args.branch_prefix,
        "push_remote": args.push_remote,
        "max_work_duration": args.max_work_duration,
        "api_url": args.api_url,
        "request_timeout": args.request_timeout,
    }
    return load_config(
        config_file=args.config_file,
        overrides=overrides,
        search_dir=args.root,
    )


def validate_path(path: Optional[Path]) -> Optional[Path]:
    """Validate the repository path."""
    repo_path = (path or Path.cwd()).resolve()
    if not repo_path.exists():
        console.print(f"[red]Error: Path does not exist: {escape(str(repo_path))}[/red]")
        return None
    if not (repo_path / ".git").exists():
        console.print(f"[red]Error: Not a git repository: {escape(str(repo_path))}[/red]")
        return None
    return repo_path


def _build_client(config: Config) -> GenerationClient:
    return GenerationClient(config.api_url, config.license, timeout=config.request_timeout)


def run_commit(config: Config, vcs: VcsAdapter,
               planner: Optional[CommitPlanner] = None,
               applicator: Optional[CommitApplicator] = None) -> int:
    """Propose commits for the current changes and confirm each one.

    Returns:
        int: 0 when every accepted proposal was committed, 1 otherwise.
    """
    if not vcs.has_pending_changes():
        console.print("ℹ️ No changes to commit.")
        return 0

    planner = planner or CommitPlanner(vcs, _build_client(config))
    applicator = applicator or CommitApplicator(vcs)

    try:
        plan = planner.plan()
    except NoChangesError:
        console.print("ℹ️ No staged changes found.")
        return 0
    except GitdiffyError as exc:
        console.print(f"[red]❌ {escape(str(exc))}[/red]")
        return 1

    if not plan:
        console.print("ℹ️ No commits were proposed for the current changes.")
        return 0

    result = applicator.apply(plan, ApplyMode.INTERACTIVE)
    console.print(
        f"Done: {result.committed} committed, {result.skipped} skipped, "
        f"{result.failed} failed."
    )
    return 0 if result.all_succeeded else 1


def run_watch(config: Config, vcs: VcsAdapter,
              monitor: Optional[WorkMonitor] = None,
              max_ticks: Optional[int] = None) -> int:
    if monitor is None:
        planner = CommitPlanner(vcs, _build_client(config), on_staged=print_staged_files)
        monitor = WorkMonitor(config, vcs, planner, CommitApplicator(vcs))
    try:
        monitor.run(max_ticks=max_ticks)
    finally:
        monitor.stop()
    return 0


def main_cli(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        disable_color()
    configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = create_config_from_args(args)
        config.require_license()
    except ConfigError as exc:
        console.print(f"[red]❌ {escape(str(exc))}[/red]")
        return 1

    repo_path = validate_path(args.root)
    if not repo_path:
        return 1
    vcs = GitAdapter(repo_path, timeout=config.git_timeout)

    try:
        if args.command == "commit":
            return run_commit(config, vcs)
        return run_watch(config, vcs)
    except KeyboardInterrupt:
        console.print("\nOperation cancelled by user")
        return 130
    except GitdiffyError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main_cli())
