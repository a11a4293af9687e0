from __future__ import annotations

import os
from pathlib import Path

import pytest
import structlog

from Mindustry_Loom.config.settings import get_settings
from Mindustry_Loom.models.identity import MappingIdentity
from Mindustry_Loom.services.mappings import TinyMappingsProvider
from Mindustry_Loom.storage.layout import CacheLayout

from tests.helpers import TINY_V2_HEADER

VERSION = "126.2"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path: Path):
    for key in list(os.environ):
        if key.startswith("ML_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def version() -> str:
    return VERSION


@pytest.fixture
def layout(tmp_path: Path) -> CacheLayout:
    return CacheLayout(tmp_path / "cache")


@pytest.fixture
def identity() -> MappingIdentity:
    return MappingIdentity(name="official", version="1")


@pytest.fixture
def tiny_mappings(tmp_path: Path) -> Path:
    path = tmp_path / "mappings" / "official-1.tiny"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(TINY_V2_HEADER + "c\ta\tclass_1\tmindustry/Vars\n", encoding="utf-8")
    return path


@pytest.fixture
def mappings_provider(tiny_mappings: Path, identity: MappingIdentity, layout: CacheLayout) -> TinyMappingsProvider:
    return TinyMappingsProvider(tiny_mappings, identity, derived_dir=layout.mappings_directory() / "derived")
