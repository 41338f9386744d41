"""Publisher that hands a release manifest to ``brew pr-upload``.

``brew pr-upload`` reads every ``*.bottle.json`` in its working directory,
so each publish gets its own temporary directory holding exactly one
manifest.  Bottle files are referenced by absolute ``local_filename`` and
are never copied or modified.
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
import tempfile
from pathlib import Path

from rich.console import Console

from bottlepush.config import UploadSettings
from bottlepush.core.hasher import manifest_digest
from bottlepush.models.manifest import ReleaseManifest
from bottlepush.registry import PublishFailed

logger = logging.getLogger(__name__)


class PrUploadPublisher:
    """Publishes manifests by running ``brew pr-upload --upload-only``.

    Parameters
    ----------
    settings:
        Supplies ``brew_executable`` and ``root_url``.
    console:
        Where dry-run output is echoed.
    timeout:
        Seconds before a hung ``brew`` process is abandoned.
    """

    def __init__(
        self,
        settings: UploadSettings | None = None,
        *,
        console: Console | None = None,
        timeout: float = 3600.0,
    ) -> None:
        self._settings = settings or UploadSettings()
        self._console = console or Console()
        self._timeout = timeout

    def command(self, *, keep_old: bool, dry_run: bool, tolerant: bool) -> list[str]:
        """Build the ``brew pr-upload`` argument vector."""
        args = [
            self._settings.brew_executable,
            "pr-upload",
            "--upload-only",
            f"--root-url={self._settings.root_url}",
        ]
        if keep_old:
            args.append("--keep-old")
        if tolerant:
            args.append("--warn-on-upload-failure")
        if dry_run:
            args.append("--dry-run")
        return args

    @staticmethod
    def json_filename(manifest: ReleaseManifest) -> str:
        return f"{manifest.formula.name}--{manifest.formula.pkg_version}.bottle.json"

    def publish(
        self,
        manifest: ReleaseManifest,
        *,
        keep_old: bool,
        dry_run: bool,
        tolerant: bool,
    ) -> None:
        bottle_json = manifest.to_bottle_json()
        args = self.command(keep_old=keep_old, dry_run=dry_run, tolerant=tolerant)

        if dry_run:
            self._console.print(f"[dim]# {self.json_filename(manifest)}[/dim]")
            self._console.print_json(data=bottle_json)
            self._console.print(f"[dim]$ {shlex.join(args)}[/dim]")
            logger.info(
                "Dry run: not publishing %s (%s)",
                manifest.name,
                manifest_digest(bottle_json),
            )
            return

        with tempfile.TemporaryDirectory(prefix="bottlepush-") as workdir:
            json_path = Path(workdir) / self.json_filename(manifest)
            json_path.write_text(json.dumps(bottle_json, indent=2), encoding="utf-8")
            logger.info(
                "Running %s in %s (%s)",
                shlex.join(args),
                workdir,
                manifest_digest(bottle_json),
            )
            try:
                result = subprocess.run(
                    args,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                    check=False,
                )
            except (subprocess.SubprocessError, OSError) as exc:
                raise PublishFailed(f"{args[0]} pr-upload failed: {exc}") from exc

        if result.stdout:
            logger.debug("pr-upload output:\n%s", result.stdout.rstrip())
        if result.returncode != 0:
            raise PublishFailed(
                f"{args[0]} pr-upload exited {result.returncode} for "
                f"{manifest.name}: {result.stderr.strip()}"
            )
