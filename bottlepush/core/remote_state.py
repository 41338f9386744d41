"""Remote state checker — filters out bottles that are already published.

For a release batch the checker reads the registry's manifest index (always
refetched, never served from cache: an index can be amended between runs)
and drops every bottle whose remote version tag is already listed.

A missing, unreachable or malformed index means "nothing published yet":
the batch is kept whole and ``keep_old`` is False.  An index that parses but
whose entries cannot be mapped to tags raises ``AmbiguousRemoteState``; the
caller must skip the batch rather than risk a duplicate publish.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from bottlepush.models.bottles import BottleDescriptor, ReleaseKey
from bottlepush.registry import (
    REF_NAME_ANNOTATION,
    AmbiguousRemoteState,
    MalformedRegistryResponse,
    RegistryClient,
    RegistryNotFound,
    RegistryUnreachable,
)

logger = logging.getLogger(__name__)


class RemoteState(BaseModel):
    """Outcome of checking one release batch against the registry."""

    model_config = ConfigDict(frozen=True)

    key: ReleaseKey
    keep_old: bool
    published_tags: frozenset[str] = frozenset()
    survivors: list[BottleDescriptor] = []
    already_published: list[BottleDescriptor] = []

    @property
    def is_empty(self) -> bool:
        return not self.survivors


def published_version_tags(index: dict[str, Any]) -> frozenset[str]:
    """Extract ref-name annotations from an OCI image index.

    Raises ``AmbiguousRemoteState`` when any entry lacks a ref name.
    """
    tags: set[str] = set()
    for position, entry in enumerate(index.get("manifests", [])):
        annotations = entry.get("annotations") if isinstance(entry, dict) else None
        ref_name = (annotations or {}).get(REF_NAME_ANNOTATION)
        if not isinstance(ref_name, str) or not ref_name:
            raise AmbiguousRemoteState(
                f"Manifest entry #{position} has no {REF_NAME_ANNOTATION} annotation"
            )
        tags.add(ref_name)
    return frozenset(tags)


class RemoteStateChecker:
    """Consults the registry for one ``ReleaseKey`` at a time."""

    def __init__(self, client: RegistryClient) -> None:
        self._client = client

    def check(self, key: ReleaseKey, batch: Sequence[BottleDescriptor]) -> RemoteState:
        try:
            index = self._client.fetch_manifest_index(
                key.name, key.index_tag, force=True
            )
        except RegistryNotFound:
            logger.info("%s: no manifest index published yet", key)
            return RemoteState(key=key, keep_old=False, survivors=list(batch))
        except (RegistryUnreachable, MalformedRegistryResponse) as exc:
            logger.warning("%s: treating as unpublished (%s)", key, exc)
            return RemoteState(key=key, keep_old=False, survivors=list(batch))

        try:
            published = published_version_tags(index)
        except AmbiguousRemoteState as exc:
            raise AmbiguousRemoteState(f"{key}: {exc}") from exc

        survivors: list[BottleDescriptor] = []
        duplicates: list[BottleDescriptor] = []
        for descriptor in batch:
            if descriptor.remote_version_tag in published:
                duplicates.append(descriptor)
            else:
                survivors.append(descriptor)

        for descriptor in duplicates:
            logger.info(
                "%s: %s already published, skipping %s",
                key,
                descriptor.remote_version_tag,
                descriptor.source_path.name,
            )

        return RemoteState(
            key=key,
            keep_old=True,
            published_tags=published,
            survivors=survivors,
            already_published=duplicates,
        )
