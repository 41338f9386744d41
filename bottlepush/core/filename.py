"""Bottle filename parser.

``<name>-<version>[_<revision>].<platform_tag>.bottle[.<rebuild>].tar.gz``

The whole basename must match; anything else is a hard failure rather than
a partially filled result.
"""

from __future__ import annotations

import re
from pathlib import Path

from bottlepush.models.bottles import BottleFilename

BOTTLE_FILENAME_RE = re.compile(
    r"(?P<name>\S+)-(?P<version>\d+(?:\.\d+)*)(?:_(?P<revision>\d+))?"
    r"\.(?P<platform_tag>\w+)\.bottle(?:\.(?P<rebuild>\d+))?\.tar\.gz"
)


class MalformedArtifactName(ValueError):
    """Raised when a filename does not follow the bottle naming pattern."""


def parse_bottle_filename(filename: str | Path) -> BottleFilename:
    """Decode a bottle filename (directories are ignored)."""
    basename = Path(filename).name
    match = BOTTLE_FILENAME_RE.fullmatch(basename)
    if match is None:
        raise MalformedArtifactName(f"Unable to parse bottle name: {basename!r}")

    revision = match["revision"]
    rebuild = match["rebuild"]
    return BottleFilename(
        name=match["name"],
        version=match["version"],
        revision=int(revision) if revision is not None else None,
        platform_tag=match["platform_tag"],
        rebuild=int(rebuild) if rebuild is not None else 0,
    )
