# -----------------------------------------------------------------------------
# BLOGDEPLOY - COMMAND LINE INTERFACE
# -----------------------------------------------------------------------------
# Responsibility: The single command that replaces script/deploy.sh.
#
# Commands:
# - blogdeploy [publish]: build the site and publish it to the deploy branch
# - blogdeploy history:   show recent publish runs from the journal
#
# Exit codes:
#   0 published            5 deploy branch update failed (rolled back)
#   2 bad configuration    6 push failed (remote not updated)
#   3 build failed         7 published, but the starting branch was not restored
#   4 cannot switch branch
# -----------------------------------------------------------------------------

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from blogdeploy.core.config import ConfigError, load_config
from blogdeploy.core.publisher import (
    BuildError,
    ContextSwitchError,
    Publisher,
    PublishError,
    PushError,
    TargetUpdateError,
)
from blogdeploy.core.recorder import list_runs
from blogdeploy.domain.models import PublishStage
from blogdeploy.infra.git_client import GitError

console = Console()

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_BUILD = 3
EXIT_SWITCH = 4
EXIT_TARGET = 5
EXIT_PUSH = 6
EXIT_RESTORE = 7

EXIT_CODES = {
    BuildError: EXIT_BUILD,
    ContextSwitchError: EXIT_SWITCH,
    TargetUpdateError: EXIT_TARGET,
    PushError: EXIT_PUSH,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blogdeploy",
        description="Build the blog and publish the output to the deploy branch.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["publish", "history"],
        default="publish",
        help="What to do (default: publish).",
    )
    parser.add_argument(
        "--repo",
        default=".",
        help="Path to the blog working copy (defaults to current directory).",
    )
    parser.add_argument("--config", default=None, help="Path to deploy.yaml.")
    parser.add_argument(
        "--no-production",
        action="store_true",
        help="Build without the production environment toggle.",
    )
    parser.add_argument(
        "--no-push",
        action="store_true",
        help="Commit to the deploy branch but do not push it.",
    )
    parser.add_argument(
        "--limit", type=int, default=10, help="Number of runs shown by 'history'."
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Echo every git command.",
    )
    return parser


def _exit_code_for(error: PublishError) -> int:
    for error_type, code in EXIT_CODES.items():
        if isinstance(error, error_type):
            return code
    return 1


def _report_failure(error: PublishError) -> int:
    lines = [f"[bold red]{type(error).__name__}[/bold red] during [bold]{error.stage.value}[/bold]", "", str(error)]
    if not error.context_restored:
        lines += ["", "[bold red]The working copy is NOT on the branch you started from.[/bold red]"]
    console.print(Panel("\n".join(lines), title="PUBLISH FAILED", border_style="red"))
    return _exit_code_for(error)


def stage_label(run: dict) -> str:
    """Failing stage of a journaled run; '-' for runs that published."""
    if run.get("status") == "published":
        return "-"
    summary = run.get("summary", {})
    return summary.get("stage", run.get("stage", ""))


def run_publish(args: argparse.Namespace) -> int:
    try:
        config = load_config(
            args.repo,
            args.config,
            production=False if args.no_production else None,
            push=False if args.no_push else None,
        )
    except ConfigError as e:
        console.print(Panel(str(e), title="CONFIGURATION ERROR", border_style="red"))
        return EXIT_CONFIG

    try:
        result = Publisher(config, verbose=args.verbose).publish()
    except PublishError as e:
        return _report_failure(e)

    lines = [
        f"Branch:    {result.target_branch}",
        f"Revision:  {result.previous_revision[:12]} -> {result.revision[:12]}"
        + ("" if result.committed else " (unchanged)"),
        f"Files:     {len(result.published_files)}",
        f"Pushed:    {'yes' if result.pushed else 'no'}",
    ]
    if result.site_verified is not None:
        lines.append(f"Live site: {'responding' if result.site_verified else 'not responding yet'}")

    if not result.context_restored:
        lines += [
            "",
            f"[bold red]WARNING: still on '{result.target_branch}'. "
            f"Run 'git checkout {result.source.ref}'.[/bold red]",
        ]
        console.print(Panel("\n".join(lines), title="PUBLISHED WITH WARNINGS", border_style="yellow"))
        return EXIT_RESTORE

    console.print(Panel("\n".join(lines), title="PUBLISHED", border_style="green"))
    return EXIT_OK


def run_history(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.repo, args.config)
    except ConfigError as e:
        console.print(Panel(str(e), title="CONFIGURATION ERROR", border_style="red"))
        return EXIT_CONFIG

    try:
        folder = Publisher(config).journal_folder()
    except PublishError as e:
        return _report_failure(e)
    except GitError as e:
        return _report_failure(ContextSwitchError(str(e), PublishStage.IDLE))

    runs = list_runs(folder, limit=args.limit) if folder else []
    if not runs:
        console.print("[yellow]No publish runs recorded.[/yellow]")
        return EXIT_OK

    table = Table(title="Recent publish runs")
    table.add_column("Run")
    table.add_column("Started")
    table.add_column("Status")
    table.add_column("Stage")
    table.add_column("Revision")
    for run in runs:
        summary = run.get("summary", {})
        status = run.get("status", "?")
        style = "green" if status == "published" else "red"
        table.add_row(
            run.get("run_id", "?"),
            run.get("started_at", ""),
            f"[{style}]{status}[/{style}]",
            stage_label(run),
            (summary.get("revision") or "")[:12],
        )
    console.print(table)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    args.repo = str(Path(args.repo).expanduser())
    if args.command == "history":
        return run_history(args)
    return run_publish(args)


if __name__ == "__main__":
    sys.exit(main())
