"""Bottle models — parsed filenames and per-file descriptors (immutable)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bottlepush.core import tags


class BottleFilename(BaseModel):
    """Structured fields decoded from a local bottle filename.

    ``<name>-<version>[_<revision>].<platform_tag>.bottle[.<rebuild>].tar.gz``
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    revision: int | None = None
    platform_tag: str
    rebuild: int = Field(default=0, ge=0)

    @property
    def pkg_version(self) -> str:
        return tags.pkg_version(self.version, self.revision)

    def to_filename(self) -> str:
        """Reconstruct the local filename these fields were parsed from."""
        return f"{self.name}-{self.pkg_version}" + tags.bottle_extname(
            self.platform_tag, self.rebuild
        )


class ReleaseKey(BaseModel):
    """Identity of one registry entry: every bottle in a batch shares it."""

    model_config = ConfigDict(frozen=True)

    name: str
    pkg_version: str
    rebuild: int = 0

    @property
    def index_tag(self) -> str:
        """Tag of the release's manifest index in the registry."""
        return tags.index_tag(self.pkg_version, self.rebuild)

    def __str__(self) -> str:
        return f"{self.name} {self.index_tag}"


class BottleDescriptor(BaseModel):
    """Everything known about one bottle file on disk.

    Built once per run; ``embedded_receipt`` is ``None`` for older bottles
    that carry no ``INSTALL_RECEIPT.json``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    pkg_version: str
    rebuild: int = 0
    platform_tag: str
    content_hash: str  # hex sha256
    source_path: Path
    embedded_receipt: dict[str, Any] | None = None
    build_date: str = ""  # YYYY-MM-DD, from file mtime

    @property
    def release_key(self) -> ReleaseKey:
        return ReleaseKey(
            name=self.name, pkg_version=self.pkg_version, rebuild=self.rebuild
        )

    @property
    def remote_version_tag(self) -> str:
        return tags.remote_version_tag(
            self.pkg_version, self.platform_tag, self.rebuild
        )

    @property
    def remote_filename(self) -> str:
        return tags.remote_filename(
            self.name, self.pkg_version, self.platform_tag, self.rebuild
        )
