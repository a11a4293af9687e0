"""Pipeline state, artifact bundle and published result."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from Mindustry_Loom.models.identity import MappingIdentity, VersionId
from Mindustry_Loom.storage.artifacts import ArtifactHandle
from Mindustry_Loom.storage.layout import ArtifactKind, CacheLayout


class PipelineState(str, Enum):
    """Strictly sequential run states; a run never moves backwards."""

    ACQUIRE = "acquire"
    MERGE = "merge"
    REMAP = "remap"
    PUBLISHED = "published"


class StageOutcome(str, Enum):
    CACHED = "cached"
    COMPUTED = "computed"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PipelineArtifacts:
    """The five archives of one run, resolved from version and mapping identity."""

    client: ArtifactHandle
    server: ArtifactHandle
    merged: ArtifactHandle
    intermediary: ArtifactHandle
    mapped: ArtifactHandle

    @classmethod
    def resolve(cls, layout: CacheLayout, version: VersionId, mapping: MappingIdentity) -> PipelineArtifacts:
        return cls(
            client=layout.handle(ArtifactKind.CLIENT, version),
            server=layout.handle(ArtifactKind.SERVER, version),
            merged=layout.handle(ArtifactKind.MERGED, version),
            intermediary=layout.handle(ArtifactKind.INTERMEDIARY, version, mapping),
            mapped=layout.handle(ArtifactKind.MAPPED, version, mapping),
        )


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Read-only accessors consumed by the surrounding build after a successful run."""

    version: VersionId
    mapping: MappingIdentity
    merged_jar: Path
    named_jar: Path
    intermediary_jar: Path
    mapped_directory: Path
    artifact_name: str = "mindustry"

    @classmethod
    def resolve(cls, layout: CacheLayout, version: VersionId, mapping: MappingIdentity) -> PipelineResult:
        """Paths a successful run would publish. Performs no I/O."""
        return cls(
            version=version,
            mapping=mapping,
            merged_jar=layout.path(ArtifactKind.MERGED, version),
            named_jar=layout.path(ArtifactKind.MAPPED, version, mapping),
            intermediary_jar=layout.path(ArtifactKind.INTERMEDIARY, version, mapping),
            mapped_directory=layout.mapped_directory(version, mapping),
            artifact_name=layout.artifact_name,
        )

    @property
    def coordinate(self) -> str:
        """Maven-style coordinate of the named jar inside :attr:`mapped_directory`."""
        return f"{self.artifact_name}:{self.artifact_name}:{self.version}-mapped-{self.mapping.key}"


__all__ = ["PipelineArtifacts", "PipelineResult", "PipelineState", "StageOutcome"]
