"""Immutable identifiers and run flags shared by every pipeline stage."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

VersionId = str
"""Opaque identifier of one release of the game (e.g. ``"126.2"``)."""


class MappingIdentity(BaseModel):
    """Identifies the mapping set active for a run.

    Remap outputs are keyed by this identity together with the version, so
    switching mapping sets invalidates remap outputs but never the merge output.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)

    @property
    def key(self) -> str:
        return f"{self.name}-{self.version}"

    def __str__(self) -> str:
        return self.key


class PipelineConfig(BaseModel):
    """Run-time flags supplied once per pipeline run and read-only thereafter."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    offline: bool = False
    force_refresh: bool = False
    share_caches: bool = False
    root_project: bool = True


__all__ = ["MappingIdentity", "PipelineConfig", "VersionId"]
