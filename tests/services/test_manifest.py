from __future__ import annotations

import json

import httpx
import pytest
import respx

from Mindustry_Loom.services.manifest import ManifestError, UrlManifestResolver, VersionManifest

MANIFEST = {
    "id": "126.2",
    "downloads": {
        "client": {"url": "https://downloads.test/126.2/client.jar", "sha1": "a" * 40, "size": 10},
        "server": {"url": "https://downloads.test/126.2/server.jar"},
    },
}


def test_location_substitutes_version():
    resolver = UrlManifestResolver("https://meta.test/{version}.json")
    assert resolver.location("7.0") == "https://meta.test/7.0.json"


@respx.mock
def test_resolve_over_http():
    respx.get("https://meta.test/126.2.json").mock(return_value=httpx.Response(200, json=MANIFEST))
    manifest = UrlManifestResolver("https://meta.test/{version}.json").resolve("126.2")

    assert manifest.download("client").sha1 == "a" * 40
    assert manifest.download("server").sha1 is None


def test_resolve_from_local_path(tmp_path):
    (tmp_path / "126.2.json").write_text(json.dumps(MANIFEST), encoding="utf-8")
    manifest = UrlManifestResolver(str(tmp_path / "{version}.json")).resolve("126.2")
    assert manifest.id == "126.2"


def test_resolve_from_file_url(tmp_path):
    (tmp_path / "126.2.json").write_text(json.dumps(MANIFEST), encoding="utf-8")
    manifest = UrlManifestResolver(f"file://{tmp_path}/{{version}}.json").resolve("126.2")
    assert manifest.download("server").url.endswith("server.jar")


def test_missing_manifest_file(tmp_path):
    with pytest.raises(ManifestError):
        UrlManifestResolver(str(tmp_path / "{version}.json")).resolve("126.2")


@respx.mock
def test_http_error_is_wrapped():
    respx.get("https://meta.test/126.2.json").mock(return_value=httpx.Response(404))
    with pytest.raises(ManifestError):
        UrlManifestResolver("https://meta.test/{version}.json").resolve("126.2")


def test_invalid_manifest_content(tmp_path):
    (tmp_path / "126.2.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ManifestError, match="Invalid version manifest"):
        UrlManifestResolver(str(tmp_path / "{version}.json")).resolve("126.2")


def test_missing_side_raises():
    manifest = VersionManifest.model_validate({"id": "1", "downloads": {"client": {"url": "x"}}})
    with pytest.raises(ManifestError):
        manifest.download("server")


def test_bad_checksum_is_rejected():
    with pytest.raises(ValueError):
        VersionManifest.model_validate({"id": "1", "downloads": {"client": {"url": "x", "sha1": "nope"}}})
