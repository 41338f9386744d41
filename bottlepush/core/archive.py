"""Archive inspection — receipt extraction through pluggable tar listers.

Bottles embed their build receipt as ``<name>/<version>/INSTALL_RECEIPT.json``.
Older bottles carry none, which is not an error; a receipt that is present
but does not parse is.

Listing entries by wildcard differs between hosts: GNU tar only expands
member patterns with ``--wildcards`` while BSD tar (macOS) does so by
default.  Each convention is an ``ArchiveLister`` implementation, and the
in-process ``TarfileLister`` needs no external binary at all.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import platform
import subprocess
import tarfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

RECEIPT_PATTERN = "*INSTALL_RECEIPT.json"

_NOT_FOUND_MARKER = "Not found in archive"


class ArchiveReadError(RuntimeError):
    """Raised when an archive cannot be listed or read."""


class CorruptReceipt(ValueError):
    """Raised when an embedded receipt exists but is not a JSON object."""


@runtime_checkable
class ArchiveLister(Protocol):
    """Lists and reads members of a gzipped tar archive."""

    @property
    def lister_name(self) -> str:
        ...

    def list_entries(self, path: Path, pattern: str) -> list[str]:
        """Return member names matching the shell-style *pattern*."""
        ...

    def read_entry(self, path: Path, member: str) -> bytes:
        """Return the raw bytes of *member*."""
        ...


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------


class TarfileLister:
    """In-process lister built on :mod:`tarfile`."""

    @property
    def lister_name(self) -> str:
        return "tarfile"

    def list_entries(self, path: Path, pattern: str) -> list[str]:
        try:
            with tarfile.open(path, "r:gz") as tar:
                return [
                    name for name in tar.getnames()
                    if fnmatch.fnmatchcase(name, pattern)
                ]
        except (tarfile.TarError, OSError) as exc:
            raise ArchiveReadError(f"Cannot list {path}: {exc}") from exc

    def read_entry(self, path: Path, member: str) -> bytes:
        try:
            with tarfile.open(path, "r:gz") as tar:
                fp = tar.extractfile(member)
                if fp is None:
                    raise ArchiveReadError(f"{member} in {path} is not a regular file")
                with fp:
                    return fp.read()
        except KeyError as exc:
            raise ArchiveReadError(f"{member} not found in {path}") from exc
        except (tarfile.TarError, OSError) as exc:
            raise ArchiveReadError(f"Cannot read {member} from {path}: {exc}") from exc


class _TarCommandLister:
    """Shared subprocess plumbing for the ``tar`` binary listers."""

    list_flags: tuple[str, ...] = ()

    def __init__(self, executable: str = "tar", *, timeout: float = 120.0) -> None:
        self._executable = executable
        self._timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[bytes]:
        try:
            return subprocess.run(
                [self._executable, *args],
                capture_output=True,
                timeout=self._timeout,
                check=False,
            )
        except (subprocess.SubprocessError, OSError) as exc:
            raise ArchiveReadError(f"{self._executable} failed: {exc}") from exc

    def list_entries(self, path: Path, pattern: str) -> list[str]:
        result = self._run([*self.list_flags, "-tzf", str(path), pattern])
        stderr = result.stderr.decode(errors="replace")
        if result.returncode != 0:
            if _NOT_FOUND_MARKER in stderr:
                return []
            raise ArchiveReadError(
                f"Cannot list {path} (exit {result.returncode}): {stderr.strip()}"
            )
        return [line for line in result.stdout.decode().splitlines() if line]

    def read_entry(self, path: Path, member: str) -> bytes:
        result = self._run(["-xzf", str(path), "-O", member])
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise ArchiveReadError(
                f"Cannot read {member} from {path} (exit {result.returncode}): {stderr}"
            )
        return result.stdout


class GnuTarLister(_TarCommandLister):
    """GNU tar: member patterns need ``--wildcards``."""

    list_flags = ("--wildcards",)

    @property
    def lister_name(self) -> str:
        return "gnu"


class BsdTarLister(_TarCommandLister):
    """BSD tar (macOS): member patterns are wildcards by default."""

    @property
    def lister_name(self) -> str:
        return "bsd"


def lister_for(name: str = "tarfile", *, system: str | None = None) -> ArchiveLister:
    """Return the lister for *name*; ``"auto"`` picks by host OS."""
    if name == "auto":
        system = system or platform.system()
        name = {"Darwin": "bsd", "Linux": "gnu"}.get(system, "tarfile")
    listers: dict[str, type] = {
        "tarfile": TarfileLister,
        "gnu": GnuTarLister,
        "bsd": BsdTarLister,
    }
    try:
        return listers[name]()
    except KeyError:
        raise ValueError(
            f"Unknown archive lister {name!r}; expected one of "
            f"{', '.join(sorted(listers))} or 'auto'"
        ) from None


# ---------------------------------------------------------------------------
# Receipt extraction
# ---------------------------------------------------------------------------


def extract_receipt(path: Path, lister: ArchiveLister) -> dict[str, Any] | None:
    """Return the bottle's embedded receipt, or ``None`` if it has none."""
    entries = lister.list_entries(path, RECEIPT_PATTERN)
    if not entries:
        logger.debug("No receipt in %s", path)
        return None
    if len(entries) > 1:
        logger.debug("%d receipts in %s, using %s", len(entries), path, entries[0])

    raw = lister.read_entry(path, entries[0])
    try:
        receipt = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise CorruptReceipt(f"{entries[0]} in {path} is not valid JSON: {exc}") from exc
    if not isinstance(receipt, dict):
        raise CorruptReceipt(
            f"{entries[0]} in {path} is a JSON {type(receipt).__name__}, expected an object"
        )
    return receipt
