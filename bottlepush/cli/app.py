"""Main Typer application — imports and registers all CLI commands.

Entry point: ``bottlepush`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from bottlepush.cli.commands.unbottled import unbottled_cmd
from bottlepush.cli.commands.upload import upload_cmd
from bottlepush.config import UploadSettings

app = typer.Typer(
    name="bottlepush",
    help="Publish Homebrew bottles to GitHub Packages without duplicate uploads.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log debug output."
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = "DEBUG" if verbose else UploadSettings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="upload", help="Upload a directory of bottles to the registry.")(upload_cmd)
app.command(name="unbottled", help="List formulae in a tap without a bottle for a tag.")(unbottled_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
