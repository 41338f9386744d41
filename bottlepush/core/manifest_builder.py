"""Immutable builder for ``ReleaseManifest`` values.

Each ``with_bottle`` call returns a new builder; nothing is shared between
a builder and the builders derived from it, so no manifest can pick up tag
entries added to another.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from bottlepush.models.bottles import BottleDescriptor, ReleaseKey
from bottlepush.models.manifest import BottleSpec, BottleTag, FormulaInfo, ReleaseManifest


class ReleaseManifestBuilder:
    """Accumulates the platform tags of one release.

    Parameters
    ----------
    key:
        The release every added bottle must belong to.
    root_url:
        Registry root recorded in the manifest.
    tap_formula_dir:
        Directory of formula files inside the tap, for ``tap_git_path``.
    """

    def __init__(
        self,
        key: ReleaseKey,
        *,
        root_url: str,
        tap_formula_dir: str = "Formula",
        tags: Mapping[str, BottleTag] | None = None,
        date: str = "",
    ) -> None:
        self._key = key
        self._root_url = root_url
        self._tap_formula_dir = tap_formula_dir
        self._tags: Mapping[str, BottleTag] = MappingProxyType(dict(tags or {}))
        self._date = date

    @classmethod
    def from_descriptors(
        cls,
        descriptors: Iterable[BottleDescriptor],
        *,
        root_url: str,
        tap_formula_dir: str = "Formula",
    ) -> ReleaseManifestBuilder:
        """Start from the first descriptor's release and add all of them."""
        descriptors = list(descriptors)
        if not descriptors:
            raise ValueError("Cannot build a manifest from no bottles")
        builder = cls(
            descriptors[0].release_key,
            root_url=root_url,
            tap_formula_dir=tap_formula_dir,
        )
        for descriptor in descriptors:
            builder = builder.with_bottle(descriptor)
        return builder

    @property
    def key(self) -> ReleaseKey:
        return self._key

    @property
    def platform_tags(self) -> list[str]:
        return list(self._tags)

    def with_bottle(self, descriptor: BottleDescriptor) -> ReleaseManifestBuilder:
        """Return a new builder that also carries *descriptor*'s tag."""
        if descriptor.release_key != self._key:
            raise ValueError(
                f"{descriptor.source_path.name} belongs to {descriptor.release_key}, "
                f"not {self._key}"
            )
        if descriptor.platform_tag in self._tags:
            raise ValueError(
                f"Duplicate platform tag {descriptor.platform_tag!r} for {self._key}"
            )

        tags = dict(self._tags)
        tags[descriptor.platform_tag] = BottleTag(
            filename=descriptor.remote_filename,
            local_filename=str(descriptor.source_path),
            content_hash=descriptor.content_hash,
            embedded_receipt=descriptor.embedded_receipt,
        )
        return ReleaseManifestBuilder(
            self._key,
            root_url=self._root_url,
            tap_formula_dir=self._tap_formula_dir,
            tags=tags,
            date=max(self._date, descriptor.build_date),
        )

    def build(self) -> ReleaseManifest:
        if not self._tags:
            raise ValueError(f"No bottles added for {self._key}")
        return ReleaseManifest(
            formula=FormulaInfo(
                name=self._key.name,
                pkg_version=self._key.pkg_version,
                tap_git_path=f"{self._tap_formula_dir}/{self._key.name}.rb",
            ),
            bottle=BottleSpec(
                rebuild=self._key.rebuild,
                root_url=self._root_url,
                date=self._date,
                tags=dict(self._tags),
            ),
        )
