"""GitHub Packages (GHCR) client.

Reads manifest indexes over the OCI distribution API with ``urllib`` and
publishes through ``brew pr-upload`` (see ``bottlepush.registry.pr_upload``).

Responses are cached under ``cache_dir`` as
``<image>-<tag>.ghcr.manifest.json``.  Downloads go to an ``.inprogress``
file first and are renamed into place, so a broken transfer never leaves a
half-written cache entry behind.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib import request as urlrequest
from urllib.error import HTTPError, URLError
from urllib.parse import quote

from bottlepush.config import UploadSettings
from bottlepush.core.tags import image_name
from bottlepush.models.manifest import ReleaseManifest
from bottlepush.registry import (
    MalformedRegistryResponse,
    RegistryNotFound,
    RegistryUnreachable,
)
from bottlepush.registry.pr_upload import PrUploadPublisher

logger = logging.getLogger(__name__)

OCI_INDEX_MEDIA_TYPE = "application/vnd.oci.image.index.v1+json"

UrlOpener = Callable[..., Any]


class GhcrIndexReader:
    """Fetches (and caches) manifest indexes from a GHCR repository.

    Parameters
    ----------
    settings:
        Supplies ``root_url``, ``ghcr_token``, ``cache_dir`` and
        ``http_timeout``.
    urlopen:
        Replacement for :func:`urllib.request.urlopen`, used by tests.
    """

    def __init__(
        self,
        settings: UploadSettings | None = None,
        *,
        urlopen: UrlOpener | None = None,
    ) -> None:
        self._settings = settings or UploadSettings()
        self._urlopen = urlopen or urlrequest.urlopen
        self._tokens: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cache_path(self, name: str, version_tag: str) -> Path:
        image = image_name(name).replace("/", "@")
        return self._settings.cache_dir / f"{image}-{version_tag}.ghcr.manifest.json"

    def evict(self, name: str, version_tag: str) -> None:
        """Drop the cached response for ``name:version_tag``, if any."""
        cache_file = self.cache_path(name, version_tag)
        try:
            cache_file.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Cannot evict cached manifest index %s: %s", cache_file, exc)

    @staticmethod
    def _read_cache(cache_file: Path) -> bytes | None:
        try:
            raw = cache_file.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", cache_file, exc)
            return None
        logger.debug("Using cached manifest index %s", cache_file)
        return raw

    @staticmethod
    def _write_cache(cache_file: Path, raw: bytes) -> None:
        tmp_file = cache_file.with_name(cache_file.name + ".inprogress")
        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file.write_bytes(raw)
            os.replace(tmp_file, cache_file)
        except OSError as exc:
            logger.warning("Not caching manifest index at %s: %s", cache_file, exc)
            try:
                tmp_file.unlink(missing_ok=True)
            except OSError:
                pass

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get(self, url: str, headers: dict[str, str]) -> bytes:
        req = urlrequest.Request(url, headers=headers)
        try:
            with self._urlopen(req, timeout=self._settings.http_timeout) as resp:
                return resp.read()
        except HTTPError as exc:
            if exc.code == 404:
                raise RegistryNotFound(f"{url}: not found") from exc
            raise RegistryUnreachable(f"{url}: HTTP {exc.code}") from exc
        except (URLError, TimeoutError, OSError) as exc:
            raise RegistryUnreachable(f"{url}: {exc}") from exc

    def _token(self, image: str) -> str:
        if self._settings.ghcr_token:
            return self._settings.ghcr_token
        if image not in self._tokens:
            host = self._settings.registry_host
            scope = f"repository:{self._settings.registry_repository}/{image}:pull"
            url = f"https://{host}/token?service={host}&scope={quote(scope)}"
            try:
                self._tokens[image] = json.loads(self._get(url, {}))["token"]
            except (json.JSONDecodeError, KeyError, TypeError) as exc:
                raise MalformedRegistryResponse(f"No token in response from {url}") from exc
        return self._tokens[image]

    # ------------------------------------------------------------------
    # Manifest index
    # ------------------------------------------------------------------

    def fetch_manifest_index(
        self, name: str, version_tag: str, *, force: bool = False
    ) -> dict[str, Any]:
        """Return the parsed OCI image index for ``name:version_tag``.

        With *force* the cache is bypassed.  An unusable cache directory only
        costs the caching; the index is still fetched and returned.
        """
        cache_file = self.cache_path(name, version_tag)
        if force:
            self.evict(name, version_tag)
            raw = None
        else:
            raw = self._read_cache(cache_file)

        if raw is None:
            image = image_name(name)
            url = f"{self._settings.root_url.rstrip('/')}/{image}/manifests/{version_tag}"
            logger.debug("Fetching manifest index %s", url)
            raw = self._get(url, {
                "Authorization": "Bearer " + self._token(image),
                "Accept": OCI_INDEX_MEDIA_TYPE,
            })
            self._write_cache(cache_file, raw)

        try:
            index = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self.evict(name, version_tag)
            raise MalformedRegistryResponse(
                f"Manifest index {name}:{version_tag} is not JSON: {exc}"
            ) from exc
        if not isinstance(index, dict) or not isinstance(index.get("manifests"), list):
            self.evict(name, version_tag)
            raise MalformedRegistryResponse(
                f"Manifest index {name}:{version_tag} has no manifests list"
            )
        return index


class GitHubPackagesClient:
    """``RegistryClient`` for GitHub Packages.

    Reads through ``GhcrIndexReader`` and publishes through
    ``PrUploadPublisher``.
    """

    def __init__(
        self,
        settings: UploadSettings | None = None,
        *,
        reader: GhcrIndexReader | None = None,
        publisher: PrUploadPublisher | None = None,
    ) -> None:
        settings = settings or UploadSettings()
        self.reader = reader or GhcrIndexReader(settings)
        self.publisher = publisher or PrUploadPublisher(settings)

    def fetch_manifest_index(
        self, name: str, version_tag: str, *, force: bool = False
    ) -> dict[str, Any]:
        return self.reader.fetch_manifest_index(name, version_tag, force=force)

    def publish(
        self,
        manifest: ReleaseManifest,
        *,
        keep_old: bool,
        dry_run: bool,
        tolerant: bool,
    ) -> None:
        self.publisher.publish(
            manifest, keep_old=keep_old, dry_run=dry_run, tolerant=tolerant
        )
