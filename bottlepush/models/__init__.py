"""bottlepush data models — all Pydantic v2, all frozen (immutable)."""

from bottlepush.models.bottles import BottleDescriptor, BottleFilename, ReleaseKey
from bottlepush.models.manifest import (
    BottleSpec,
    BottleTag,
    FormulaInfo,
    ReleaseManifest,
)

__all__ = [
    # bottles
    "BottleFilename",
    "BottleDescriptor",
    "ReleaseKey",
    # manifest
    "FormulaInfo",
    "BottleTag",
    "BottleSpec",
    "ReleaseManifest",
]
