"""Cache path resolution for pipeline artifacts.

Every artifact path is a pure function of the cache root, the artifact name
prefix, the game version and (for remap outputs) the mapping identity::

    {root}/{name}-{version}-client.jar
    {root}/{name}-{version}-server.jar
    {root}/{name}-{version}-merged.jar
    {root}/{name}-{version}-intermediary-{mappings}-{mappingsVersion}.jar
    {root}/{version}-mapped-{mappings}-{mappingsVersion}/{name}-{version}-mapped-{mappings}-{mappingsVersion}.jar

No I/O happens here; callers decide staleness by checking whether the
resolved file exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from Mindustry_Loom.models.identity import MappingIdentity, VersionId

from .artifacts import ArtifactHandle


class ArtifactKind(str, Enum):
    """Tags naming the five archives that flow through the pipeline."""

    CLIENT = "client"
    SERVER = "server"
    MERGED = "merged"
    INTERMEDIARY = "intermediary"
    MAPPED = "mapped"

    @property
    def mapping_scoped(self) -> bool:
        return self in (ArtifactKind.INTERMEDIARY, ArtifactKind.MAPPED)


@dataclass(frozen=True, slots=True)
class CacheLayout:
    """Deterministic path layout under a shared cache root."""

    root: Path
    artifact_name: str = "mindustry"

    def jar_version_string(self, version: VersionId, kind: ArtifactKind, mapping: MappingIdentity) -> str:
        """Composite cache key for remap outputs: ``{version}-{kind}-{name}-{mappingVersion}``."""
        return f"{version}-{ArtifactKind(kind).value}-{mapping.name}-{mapping.version}"

    def path(
        self,
        kind: ArtifactKind | str,
        version: VersionId,
        mapping: MappingIdentity | None = None,
    ) -> Path:
        """Resolve the file path for ``kind``.

        Raw and merged kinds ignore ``mapping``; remap kinds require it.

        Raises:
            ValueError: If a remap kind is requested without a mapping identity
                or the version is empty.
        """
        kind = ArtifactKind(kind)
        if not version:
            raise ValueError("version must not be empty")
        if not kind.mapping_scoped:
            return self.root / f"{self.artifact_name}-{version}-{kind.value}.jar"
        if mapping is None:
            raise ValueError(f"Artifact kind '{kind.value}' requires a mapping identity")
        key = self.jar_version_string(version, kind, mapping)
        if kind is ArtifactKind.MAPPED:
            return self.root / key / f"{self.artifact_name}-{key}.jar"
        return self.root / f"{self.artifact_name}-{key}.jar"

    def mapped_directory(self, version: VersionId, mapping: MappingIdentity) -> Path:
        """Directory holding the named jar; usable as a flat-dir repository."""
        return self.root / self.jar_version_string(version, ArtifactKind.MAPPED, mapping)

    def mappings_directory(self) -> Path:
        return self.root / "mappings"

    def handle(
        self,
        kind: ArtifactKind | str,
        version: VersionId,
        mapping: MappingIdentity | None = None,
    ) -> ArtifactHandle:
        kind = ArtifactKind(kind)
        return ArtifactHandle(kind=kind.value, path=self.path(kind, version, mapping))


__all__ = ["ArtifactKind", "CacheLayout"]
