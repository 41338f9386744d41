"""Runtime configuration — env-driven.

Centralized settings using pydantic-settings. Reads from a .env file and
BOTTLEPUSH_* environment variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict


class UploadSettings(BaseSettings):
    """Upload configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export BOTTLEPUSH_LOG_LEVEL=DEBUG
        export BOTTLEPUSH_ROOT_URL=https://ghcr.io/v2/myorg/tap
        export BOTTLEPUSH_ARCHIVE_LISTER=auto

    Or via .env file::

        BOTTLEPUSH_GHCR_TOKEN=...
        BOTTLEPUSH_WARN_ON_UPLOAD_FAILURE=false
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BOTTLEPUSH_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Registry
    root_url: str = "https://ghcr.io/v2/homebrew/core"
    ghcr_token: str = ""  # empty: request an anonymous pull token
    http_timeout: float = 30.0
    cache_dir: Path = Path.home() / ".cache" / "bottlepush"

    # Archive inspection
    archive_lister: Literal["tarfile", "gnu", "bsd", "auto"] = "tarfile"

    # Publishing
    warn_on_upload_failure: bool = True
    brew_executable: str = "brew"
    tap_formula_dir: str = "Formula"

    @property
    def registry_host(self) -> str:
        """Host part of ``root_url`` (e.g. ``ghcr.io``)."""
        return urlsplit(self.root_url).netloc

    @property
    def registry_repository(self) -> str:
        """Repository prefix below ``/v2/`` (e.g. ``homebrew/core``)."""
        path = urlsplit(self.root_url).path.strip("/")
        return path.removeprefix("v2/")
