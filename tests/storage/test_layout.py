"""Tests for cache path resolution."""

from pathlib import Path

import pytest

from Mindustry_Loom.models.identity import MappingIdentity
from Mindustry_Loom.storage.layout import ArtifactKind, CacheLayout


class TestRawPaths:
    def test_raw_and_merged_paths(self, layout, version):
        assert layout.path(ArtifactKind.CLIENT, version) == layout.root / "mindustry-126.2-client.jar"
        assert layout.path(ArtifactKind.SERVER, version) == layout.root / "mindustry-126.2-server.jar"
        assert layout.path(ArtifactKind.MERGED, version) == layout.root / "mindustry-126.2-merged.jar"

    def test_raw_paths_ignore_mapping_identity(self, layout, version, identity):
        other = MappingIdentity(name="yarn", version="7")
        for kind in (ArtifactKind.CLIENT, ArtifactKind.SERVER, ArtifactKind.MERGED):
            assert layout.path(kind, version, identity) == layout.path(kind, version, other)
            assert layout.path(kind, version, identity) == layout.path(kind, version)

    def test_string_kind_is_accepted(self, layout, version):
        assert layout.path("merged", version) == layout.path(ArtifactKind.MERGED, version)

    def test_custom_artifact_name(self, tmp_path: Path, version):
        layout = CacheLayout(tmp_path, artifact_name="game")
        assert layout.path(ArtifactKind.CLIENT, version).name == "game-126.2-client.jar"


class TestRemapPaths:
    def test_intermediary_path(self, layout, version, identity):
        path = layout.path(ArtifactKind.INTERMEDIARY, version, identity)
        assert path == layout.root / "mindustry-126.2-intermediary-official-1.jar"

    def test_mapped_path_lives_in_its_own_directory(self, layout, version, identity):
        path = layout.path(ArtifactKind.MAPPED, version, identity)
        assert path == layout.root / "126.2-mapped-official-1" / "mindustry-126.2-mapped-official-1.jar"
        assert path.parent == layout.mapped_directory(version, identity)

    def test_mapping_change_moves_remap_outputs_only(self, layout, version, identity):
        bumped = MappingIdentity(name="official", version="2")
        assert layout.path(ArtifactKind.MAPPED, version, identity) != layout.path(ArtifactKind.MAPPED, version, bumped)
        assert layout.path(ArtifactKind.INTERMEDIARY, version, identity) != layout.path(
            ArtifactKind.INTERMEDIARY, version, bumped
        )
        assert layout.path(ArtifactKind.MERGED, version, identity) == layout.path(ArtifactKind.MERGED, version, bumped)

    def test_jar_version_string(self, layout, identity):
        assert layout.jar_version_string("7.0", ArtifactKind.MAPPED, identity) == "7.0-mapped-official-1"

    def test_remap_kind_requires_mapping(self, layout, version):
        with pytest.raises(ValueError):
            layout.path(ArtifactKind.MAPPED, version)

    def test_empty_version_rejected(self, layout, identity):
        with pytest.raises(ValueError):
            layout.path(ArtifactKind.CLIENT, "")


def test_resolution_is_deterministic(tmp_path: Path, identity):
    first = CacheLayout(tmp_path)
    second = CacheLayout(tmp_path)
    for kind in ArtifactKind:
        assert first.path(kind, "7.0", identity) == second.path(kind, "7.0", identity)


def test_resolution_performs_no_io(tmp_path: Path, identity):
    layout = CacheLayout(tmp_path / "missing")
    layout.path(ArtifactKind.MAPPED, "7.0", identity)
    assert not (tmp_path / "missing").exists()


def test_handle_carries_kind(layout, version, identity):
    handle = layout.handle(ArtifactKind.INTERMEDIARY, version, identity)
    assert handle.kind == "intermediary"
    assert handle.path == layout.path(ArtifactKind.INTERMEDIARY, version, identity)
