"""Shared test fixtures for bottlepush."""

from __future__ import annotations

import io
import json
import tarfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from bottlepush.config import UploadSettings
from bottlepush.core.archive import TarfileLister
from bottlepush.models.manifest import ReleaseManifest
from bottlepush.registry import RegistryError, RegistryNotFound

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Fake registry
# ---------------------------------------------------------------------------


class FakeRegistryClient:
    """In-memory ``RegistryClient``.

    ``indexes`` maps ``(name, index_tag)`` to a manifest index; missing keys
    raise ``RegistryNotFound`` unless ``fetch_error`` overrides every fetch.
    """

    def __init__(
        self,
        indexes: dict[tuple[str, str], dict[str, Any]] | None = None,
        *,
        fetch_error: RegistryError | None = None,
        publish_errors: dict[str, RegistryError] | None = None,
    ) -> None:
        self.indexes = indexes or {}
        self.fetch_error = fetch_error
        self.publish_errors = publish_errors or {}
        self.fetches: list[tuple[str, str, bool]] = []
        self.published: list[dict[str, Any]] = []
        self.mutations: list[ReleaseManifest] = []

    def fetch_manifest_index(
        self, name: str, version_tag: str, *, force: bool = False
    ) -> dict[str, Any]:
        self.fetches.append((name, version_tag, force))
        if self.fetch_error is not None:
            raise self.fetch_error
        try:
            return self.indexes[(name, version_tag)]
        except KeyError:
            raise RegistryNotFound(f"{name}:{version_tag}") from None

    def publish(
        self,
        manifest: ReleaseManifest,
        *,
        keep_old: bool,
        dry_run: bool,
        tolerant: bool,
    ) -> None:
        self.published.append({
            "manifest": manifest,
            "keep_old": keep_old,
            "dry_run": dry_run,
            "tolerant": tolerant,
        })
        if manifest.name in self.publish_errors:
            raise self.publish_errors[manifest.name]
        if not dry_run:
            self.mutations.append(manifest)


def make_index(*ref_names: str) -> dict[str, Any]:
    """Build a minimal OCI image index listing *ref_names*."""
    return {
        "schemaVersion": 2,
        "mediaType": "application/vnd.oci.image.index.v1+json",
        "manifests": [
            {
                "mediaType": "application/vnd.oci.image.manifest.v1+json",
                "annotations": {"org.opencontainers.image.ref.name": ref},
            }
            for ref in ref_names
        ],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> UploadSettings:
    """Settings with a private cache directory."""
    return UploadSettings(cache_dir=tmp_path / "cache")


@pytest.fixture
def lister() -> TarfileLister:
    return TarfileLister()


@pytest.fixture
def bottle_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bottles"
    path.mkdir()
    return path


@pytest.fixture
def make_bottle(bottle_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write a gzipped tar bottle into ``bottle_dir``.

    ``receipt`` may be a dict (JSON-encoded), raw bytes, or ``None`` for a
    bottle without ``INSTALL_RECEIPT.json``.
    """

    def _factory(
        filename: str,
        receipt: dict[str, Any] | bytes | None = _UNSET,
        *,
        directory: Path | None = None,
    ) -> Path:
        if receipt is _UNSET:
            receipt = {"homebrew_version": "4.4.0", "built_as_bottle": True}
        path = (directory or bottle_dir) / filename
        prefix = filename.split(".bottle")[0]
        with tarfile.open(path, "w:gz") as tar:
            _add_member(tar, f"{prefix}/bin/tool", b"#!/bin/sh\necho tool\n")
            if receipt is not None:
                data = receipt if isinstance(receipt, bytes) else json.dumps(receipt).encode()
                _add_member(tar, f"{prefix}/INSTALL_RECEIPT.json", data)
        return path

    return _factory


def _add_member(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


@pytest.fixture
def make_client() -> Callable[..., FakeRegistryClient]:
    """Factory fixture: build a ``FakeRegistryClient``."""
    return FakeRegistryClient


@pytest.fixture
def manifest_index() -> Callable[..., dict[str, Any]]:
    """Factory fixture: build an OCI image index from ref names."""
    return make_index
