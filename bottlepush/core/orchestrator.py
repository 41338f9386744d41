"""Upload orchestrator — the central coordinator for a bottle upload run.

Wires together filename parsing, archive inspection, grouping, the remote
state check and the manifest builder:

    discover -> describe -> group -> (check -> merge -> publish) per release

Releases are processed strictly one after another; the check and publish
of one release never interleave with another's.  A bottle that cannot be
described is dropped and reported, and a failing release does not stop the
remaining ones.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from rich.console import Console

from bottlepush.config import UploadSettings
from bottlepush.core.archive import (
    ArchiveLister,
    ArchiveReadError,
    CorruptReceipt,
    lister_for,
)
from bottlepush.core.descriptor import build_descriptor
from bottlepush.core.filename import MalformedArtifactName
from bottlepush.core.grouper import group_by_release
from bottlepush.core.manifest_builder import ReleaseManifestBuilder
from bottlepush.core.remote_state import RemoteStateChecker
from bottlepush.models.bottles import BottleDescriptor, ReleaseKey
from bottlepush.registry import RegistryClient, RegistryError

logger = logging.getLogger(__name__)


class BatchStatus(str, Enum):
    """What happened to one release batch."""

    PUBLISHED = "published"
    DRY_RUN = "dry_run"
    SKIPPED = "skipped"
    FAILED = "failed"


class BatchOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: ReleaseKey
    status: BatchStatus
    platform_tags: list[str] = []
    keep_old: bool = False
    detail: str = ""


class DroppedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    reason: str


class UploadReport(BaseModel):
    """Summary of an upload run."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = False
    outcomes: list[BatchOutcome] = []
    dropped: list[DroppedFile] = []

    def _with_status(self, status: BatchStatus) -> list[BatchOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def published(self) -> list[BatchOutcome]:
        return self._with_status(BatchStatus.PUBLISHED) + self._with_status(
            BatchStatus.DRY_RUN
        )

    @property
    def skipped(self) -> list[BatchOutcome]:
        return self._with_status(BatchStatus.SKIPPED)

    @property
    def failed(self) -> list[BatchOutcome]:
        return self._with_status(BatchStatus.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.dropped

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class UploadOrchestrator:
    """Runs the deduplicating upload over a directory of bottles.

    Parameters
    ----------
    client:
        Registry backend used for the manifest index lookup and publishing.
    settings:
        Upload settings. Uses defaults (and the environment) if not provided.
    lister:
        Archive lister; defaults to ``settings.archive_lister``.
    checker:
        Remote state checker; defaults to one over *client*.
    console:
        Where progress lines are printed; silent if ``None``.
    """

    def __init__(
        self,
        client: RegistryClient,
        settings: UploadSettings | None = None,
        *,
        lister: ArchiveLister | None = None,
        checker: RemoteStateChecker | None = None,
        console: Console | None = None,
    ) -> None:
        self.client = client
        self.settings = settings or UploadSettings()
        self.lister = lister or lister_for(self.settings.archive_lister)
        self.checker = checker or RemoteStateChecker(client)
        self._console = console

    def _progress(self, message: str) -> None:
        if self._console is not None:
            self._console.print(message)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    @staticmethod
    def discover(directory: Path) -> list[Path]:
        """Return the ``*.tar.gz`` files directly inside *directory*, sorted."""
        directory = Path(directory)
        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")
        return sorted(p.resolve() for p in directory.glob("*.tar.gz") if p.is_file())

    def describe(
        self, paths: list[Path]
    ) -> tuple[list[BottleDescriptor], list[DroppedFile]]:
        """Build descriptors, dropping files that cannot be described."""
        descriptors: list[BottleDescriptor] = []
        dropped: list[DroppedFile] = []
        for path in paths:
            try:
                descriptors.append(build_descriptor(path, lister=self.lister))
            except (MalformedArtifactName, CorruptReceipt, ArchiveReadError) as exc:
                logger.warning("Dropping %s: %s", path.name, exc)
                dropped.append(DroppedFile(path=path, reason=str(exc)))
        return descriptors, dropped

    # ------------------------------------------------------------------
    # Per-release processing
    # ------------------------------------------------------------------

    def process_batch(
        self,
        key: ReleaseKey,
        batch: list[BottleDescriptor],
        *,
        dry_run: bool = False,
    ) -> BatchOutcome:
        """Check, merge and publish one release batch."""
        try:
            state = self.checker.check(key, batch)
        except RegistryError as exc:
            logger.error("Skipping %s: %s", key, exc)
            return BatchOutcome(key=key, status=BatchStatus.FAILED, detail=str(exc))

        if state.is_empty:
            logger.info("%s: all bottles already published, nothing to do", key)
            self._progress(f"[yellow]==> Skipping {key}[/yellow] (already published)")
            return BatchOutcome(
                key=key,
                status=BatchStatus.SKIPPED,
                keep_old=state.keep_old,
                detail="already published",
            )

        try:
            manifest = ReleaseManifestBuilder.from_descriptors(
                state.survivors,
                root_url=self.settings.root_url,
                tap_formula_dir=self.settings.tap_formula_dir,
            ).build()
        except ValueError as exc:
            # e.g. "x.bottle.tar.gz" and "x.bottle.0.tar.gz" side by side
            logger.error("Skipping %s: %s", key, exc)
            return BatchOutcome(key=key, status=BatchStatus.FAILED, detail=str(exc))

        self._progress(
            f"[bold cyan]==> {'Would upload' if dry_run else 'Uploading'} {key}[/bold cyan]"
            f" ({', '.join(manifest.platform_tags)})"
        )
        try:
            self.client.publish(
                manifest,
                keep_old=state.keep_old,
                dry_run=dry_run,
                tolerant=self.settings.warn_on_upload_failure,
            )
        except RegistryError as exc:
            logger.error("Publishing %s failed: %s", key, exc)
            return BatchOutcome(
                key=key,
                status=BatchStatus.FAILED,
                platform_tags=manifest.platform_tags,
                keep_old=state.keep_old,
                detail=str(exc),
            )

        return BatchOutcome(
            key=key,
            status=BatchStatus.DRY_RUN if dry_run else BatchStatus.PUBLISHED,
            platform_tags=manifest.platform_tags,
            keep_old=state.keep_old,
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, directory: Path, *, dry_run: bool = False) -> UploadReport:
        """Upload every bottle in *directory*."""
        paths = self.discover(directory)
        logger.info("Found %d archive(s) in %s", len(paths), directory)

        descriptors, dropped = self.describe(paths)
        groups = group_by_release(descriptors)

        outcomes = [
            self.process_batch(key, batch, dry_run=dry_run)
            for key, batch in groups.items()
        ]
        return UploadReport(dry_run=dry_run, outcomes=outcomes, dropped=dropped)
