"""Release manifest models — the payload published for one release.

Serialises to the ``*.bottle.json`` layout that ``brew pr-upload`` reads:
``{name: {"formula": {...}, "bottle": {...}}}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FormulaInfo(BaseModel):
    """Formula metadata. Bottle filenames carry only the name and version,
    so everything else is left empty."""

    model_config = ConfigDict(frozen=True)

    name: str
    pkg_version: str
    homepage: str = ""
    desc: str = ""
    license: str = ""
    tap_git_path: str = ""
    tap_git_revision: str = ""


class BottleTag(BaseModel):
    """One platform entry of a manifest."""

    model_config = ConfigDict(frozen=True)

    filename: str
    local_filename: str
    content_hash: str = Field(serialization_alias="sha256")
    embedded_receipt: dict[str, Any] | None = Field(
        default=None, serialization_alias="tab"
    )


class BottleSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    rebuild: int = 0
    root_url: str
    date: str = ""
    tags: dict[str, BottleTag] = {}


class ReleaseManifest(BaseModel):
    """Formula metadata plus one tag entry per platform.

    ``tags`` keys are unique platform tags; rebuild and pkg_version are
    shared by every entry.
    """

    model_config = ConfigDict(frozen=True)

    formula: FormulaInfo
    bottle: BottleSpec

    @property
    def name(self) -> str:
        return self.formula.name

    @property
    def platform_tags(self) -> list[str]:
        return list(self.bottle.tags)

    def to_bottle_json(self) -> dict[str, Any]:
        """Render in the ``*.bottle.json`` shape."""
        return {
            self.formula.name: {
                "formula": self.formula.model_dump(mode="json"),
                "bottle": self.bottle.model_dump(
                    mode="json", by_alias=True, exclude_none=True
                ),
            }
        }
