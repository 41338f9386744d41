"""Hashing helpers for bottle content addressing."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 1 << 20


def sha256_file(path: Path) -> str:
    """SHA-256 hex digest over the full file, read in 1 MiB chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fp:
        for chunk in iter(lambda: fp.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def manifest_digest(bottle_json: dict[str, Any]) -> str:
    """Stable digest of a rendered ``*.bottle.json``, for publish logs.

    Key order and whitespace do not affect the result.
    """
    rendered = json.dumps(bottle_json, sort_keys=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(rendered.encode("utf-8")).hexdigest()
