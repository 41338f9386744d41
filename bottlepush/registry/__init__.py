"""Registry client protocol and error taxonomy.

The upload pipeline only needs two things from a registry: the manifest
index of a release, and a way to publish a merged manifest.  Anything that
implements ``RegistryClient`` can be plugged into the orchestrator; the
bundled implementation is ``bottlepush.registry.ghcr.GitHubPackagesClient``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bottlepush.models.manifest import ReleaseManifest

# Annotation carrying the per-platform tag in an OCI image index.
REF_NAME_ANNOTATION = "org.opencontainers.image.ref.name"


class RegistryError(RuntimeError):
    """Base class for registry failures."""


class RegistryNotFound(RegistryError):
    """The requested manifest index does not exist."""


class RegistryUnreachable(RegistryError):
    """The registry could not be contacted or answered with an error."""


class MalformedRegistryResponse(RegistryError):
    """The registry answered with something that is not a manifest index."""


class AmbiguousRemoteState(RegistryError):
    """A manifest index was read but its platform tags cannot be determined."""


class PublishFailed(RegistryError):
    """Publishing a release manifest failed."""


@runtime_checkable
class RegistryClient(Protocol):
    """Protocol every registry backend must implement."""

    def fetch_manifest_index(
        self, name: str, version_tag: str, *, force: bool = False
    ) -> dict[str, Any]:
        """Return the parsed manifest index for ``name:version_tag``.

        Raises ``RegistryNotFound``, ``RegistryUnreachable`` or
        ``MalformedRegistryResponse``.  ``force`` discards any cached
        response before fetching.
        """
        ...

    def publish(
        self,
        manifest: ReleaseManifest,
        *,
        keep_old: bool,
        dry_run: bool,
        tolerant: bool,
    ) -> None:
        """Publish *manifest*; raises ``PublishFailed`` on failure.

        With ``dry_run`` no mutating request may be issued.
        """
        ...


__all__ = [
    "REF_NAME_ANNOTATION",
    "RegistryClient",
    "RegistryError",
    "RegistryNotFound",
    "RegistryUnreachable",
    "MalformedRegistryResponse",
    "AmbiguousRemoteState",
    "PublishFailed",
]
