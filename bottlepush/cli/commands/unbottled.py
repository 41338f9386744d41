"""``bottlepush unbottled TAP_DIR`` — list formulae lacking a bottle."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from bottlepush.config import UploadSettings
from bottlepush.core.unbottled import unbottled_formulae

console = Console()
err_console = Console(stderr=True)


def unbottled_cmd(
    tap_dir: Path = typer.Argument(
        ...,
        help="Path to a tap checkout (e.g. homebrew-core).",
    ),
    tag: str = typer.Option(
        "arm64_big_sur",
        "--tag",
        "-t",
        help="Bottle platform tag that must be present.",
    ),
) -> None:
    """Print one formula name per line for formulae without a *tag* bottle."""
    settings = UploadSettings()
    try:
        names = unbottled_formulae(tap_dir, tag, formula_dir=settings.tap_formula_dir)
    except NotADirectoryError as exc:
        err_console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)

    for name in names:
        console.print(name, highlight=False, markup=False)
