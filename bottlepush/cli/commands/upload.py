"""``bottlepush upload DIRECTORY`` — publish a directory of bottles.

Parses, hashes and inspects every ``*.tar.gz`` in DIRECTORY, groups the
bottles by release, drops platforms the registry already has and publishes
one manifest per release.  Exits non-zero if any bottle was dropped or any
release could not be published.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from bottlepush.config import UploadSettings
from bottlepush.core.orchestrator import BatchStatus, UploadOrchestrator, UploadReport
from bottlepush.registry.ghcr import GitHubPackagesClient

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES: dict[BatchStatus, str] = {
    BatchStatus.PUBLISHED: "[green]published[/green]",
    BatchStatus.DRY_RUN: "[cyan]dry run[/cyan]",
    BatchStatus.SKIPPED: "[yellow]skipped[/yellow]",
    BatchStatus.FAILED: "[bold red]failed[/bold red]",
}


def _print_report(report: UploadReport) -> None:
    if report.outcomes:
        table = Table(title="Dry run" if report.dry_run else "Upload summary")
        table.add_column("Formula", style="cyan")
        table.add_column("Version", style="green")
        table.add_column("Platforms")
        table.add_column("Keep old", justify="center")
        table.add_column("Status")
        for outcome in report.outcomes:
            table.add_row(
                outcome.key.name,
                outcome.key.index_tag,
                ", ".join(outcome.platform_tags) or "-",
                "yes" if outcome.keep_old else "no",
                _STATUS_STYLES[outcome.status],
            )
        console.print(table)
    else:
        console.print("[dim]No bottles to upload.[/dim]")

    for dropped in report.dropped:
        err_console.print(f"[bold red]Dropped[/bold red] {dropped.path.name}: {dropped.reason}")
    for outcome in report.failed:
        err_console.print(f"[bold red]Failed[/bold red] {outcome.key}: {outcome.detail}")


def upload_cmd(
    directory: Path = typer.Argument(
        ...,
        help="Directory containing the *.bottle*.tar.gz files.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be uploaded without publishing anything.",
    ),
) -> None:
    """Upload bottles, skipping platforms that are already published."""
    if not directory.is_dir():
        err_console.print(f"[bold red]Not a directory:[/bold red] {directory}")
        raise typer.Exit(code=1)

    settings = UploadSettings()
    client = GitHubPackagesClient(settings)
    orchestrator = UploadOrchestrator(client, settings, console=console)

    report = orchestrator.run(directory, dry_run=dry_run)
    _print_report(report)
    raise typer.Exit(code=report.exit_code)
