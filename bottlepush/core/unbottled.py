"""Find formulae in a tap that have no bottle for a platform tag.

A formula counts as bottled for a tag when its source mentions the tag (in
its ``bottle do`` block) or declares ``bottle :unneeded``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

UNNEEDED_MARKER = "bottle :unneeded"


def iter_formula_files(tap_dir: Path, formula_dir: str = "Formula") -> Iterator[Path]:
    """Yield ``*.rb`` files below ``<tap_dir>/<formula_dir>``, sorted.

    Sharded layouts (``Formula/w/wget.rb``) are searched too.
    """
    root = Path(tap_dir) / formula_dir
    if not root.is_dir():
        raise NotADirectoryError(f"No {formula_dir} directory in {tap_dir}")
    yield from sorted(root.rglob("*.rb"), key=lambda p: p.name)


def unbottled_formulae(
    tap_dir: Path,
    platform_tag: str = "arm64_big_sur",
    *,
    formula_dir: str = "Formula",
) -> list[str]:
    """Return formula names whose source has no bottle for *platform_tag*."""
    names: list[str] = []
    for path in iter_formula_files(tap_dir, formula_dir):
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable formula %s: %s", path, exc)
            continue
        if platform_tag not in source and UNNEEDED_MARKER not in source:
            names.append(path.stem)
    return names
