"""Descriptor builder — one ``BottleDescriptor`` per bottle file."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from bottlepush.core.archive import ArchiveLister, TarfileLister, extract_receipt
from bottlepush.core.filename import parse_bottle_filename
from bottlepush.core.hasher import sha256_file
from bottlepush.models.bottles import BottleDescriptor, BottleFilename


def build_descriptor(
    path: Path,
    parsed: BottleFilename | None = None,
    *,
    lister: ArchiveLister | None = None,
) -> BottleDescriptor:
    """Combine the parsed filename with the archive's hash and receipt.

    ``pkg_version`` is taken from ``BottleFilename.pkg_version`` so it is the
    same string the registry lookup is built from.

    Raises
    ------
    MalformedArtifactName
        If *parsed* is not given and the filename does not parse.
    ArchiveReadError, CorruptReceipt
        If the archive cannot be inspected.
    """
    path = Path(path)
    parsed = parsed or parse_bottle_filename(path)
    lister = lister or TarfileLister()

    receipt = extract_receipt(path, lister)
    content_hash = sha256_file(path)
    build_date = date.fromtimestamp(path.stat().st_mtime).isoformat()

    return BottleDescriptor(
        name=parsed.name,
        pkg_version=parsed.pkg_version,
        rebuild=parsed.rebuild,
        platform_tag=parsed.platform_tag,
        content_hash=content_hash,
        source_path=path,
        embedded_receipt=receipt,
        build_date=build_date,
    )
