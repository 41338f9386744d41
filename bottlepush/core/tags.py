"""Canonical version and tag strings shared by descriptors and the registry.

Every place that needs a package version, a per-platform registry tag or a
bottle filename goes through these functions, so a descriptor and the
registry lookup for it can never disagree on formatting.

Conventions
-----------
- pkg_version:        ``1.2.3`` or ``1.2.3_1`` (revision suffix)
- index tag:          ``1.2.3`` or ``1.2.3-2`` (rebuild suffix)
- remote version tag: ``1.2.3.arm64_sonoma`` or ``1.2.3.arm64_sonoma.2``
- remote filename:    ``wget--1.2.3.arm64_sonoma.bottle.2.tar.gz``

A rebuild count of zero is never suffixed.
"""

from __future__ import annotations


def pkg_version(version: str, revision: int | None = None) -> str:
    """Compose the package version; revision ``None`` means no suffix."""
    if revision is None:
        return version
    return f"{version}_{revision}"


def index_tag(pkg_version: str, rebuild: int = 0) -> str:
    """Tag of the manifest index holding all platforms of one release."""
    if rebuild > 0:
        return f"{pkg_version}-{rebuild}"
    return pkg_version


def remote_version_tag(pkg_version: str, platform_tag: str, rebuild: int = 0) -> str:
    """Ref name of a single published platform variant."""
    tag = f"{pkg_version}.{platform_tag}"
    if rebuild > 0:
        tag += f".{rebuild}"
    return tag


def bottle_extname(platform_tag: str, rebuild: int = 0) -> str:
    """``.<platform_tag>.bottle[.<rebuild>].tar.gz``"""
    rebuild_part = f".{rebuild}" if rebuild > 0 else ""
    return f".{platform_tag}.bottle{rebuild_part}.tar.gz"


def remote_filename(
    name: str, pkg_version: str, platform_tag: str, rebuild: int = 0
) -> str:
    """Filename a bottle is published under (``name--version`` form)."""
    return f"{name}--{pkg_version}{bottle_extname(platform_tag, rebuild)}"


def image_name(formula_name: str) -> str:
    """Registry image name for a formula (``@`` -> ``/``, ``+`` -> ``x``)."""
    return formula_name.replace("@", "/").replace("+", "x")
