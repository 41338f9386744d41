"""bottlepush: publish Homebrew bottles to GitHub Packages without duplicates.

Parses bottle filenames, hashes and inspects the archives, groups them by
release and consults the registry's manifest index before publishing one
merged manifest per release:
  - Filename parsing and canonical tag formatting
  - Archive inspection via pluggable tar listers (tarfile, GNU tar, BSD tar)
  - Remote dedup against GHCR manifest indexes
  - Batched publish through ``brew pr-upload`` with dry-run and keep-old modes
"""

__version__ = "0.2.0"
__description__ = "Deduplicating bottle uploader for GitHub Packages"

from bottlepush.core.orchestrator import UploadOrchestrator, UploadReport
from bottlepush.cli.app import app as cli

__all__ = ["UploadOrchestrator", "UploadReport", "cli", "__version__"]
