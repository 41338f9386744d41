"""bottlepush CLI — Typer-based command-line interface.

Provides the ``bottlepush`` command with subcommands for uploading a
directory of bottles and listing formulae that lack bottles.

All output uses Rich for formatted terminal display.
"""
