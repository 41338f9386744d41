"""Group descriptors into release batches."""

from __future__ import annotations

from collections.abc import Iterable

from bottlepush.models.bottles import BottleDescriptor, ReleaseKey


def group_by_release(
    descriptors: Iterable[BottleDescriptor],
) -> dict[ReleaseKey, list[BottleDescriptor]]:
    """Partition descriptors by ``ReleaseKey``.

    Keys appear in first-seen order and each batch keeps the input order.
    Every descriptor lands in exactly one batch.
    """
    groups: dict[ReleaseKey, list[BottleDescriptor]] = {}
    for descriptor in descriptors:
        groups.setdefault(descriptor.release_key, []).append(descriptor)
    return groups
