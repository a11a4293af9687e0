"""Fakes and archive builders shared by the test suite."""

from __future__ import annotations

import hashlib
import io
import shutil
import zipfile
from collections.abc import Mapping
from pathlib import Path

from Mindustry_Loom.services.download import JarDownloadError
from Mindustry_Loom.services.manifest import ManifestError, VersionDownload, VersionManifest
from Mindustry_Loom.services.remap import RemapRequest

TINY_V2_HEADER = "tiny\t2\t0\tofficial\tintermediary\tnamed\n"

CLIENT_ENTRIES = {
    "mindustry/Vars.class": b"client-vars",
    "mindustry/client/Renderer.class": b"renderer",
    "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\n",
}
SERVER_ENTRIES = {
    "mindustry/Vars.class": b"server-vars",
    "mindustry/server/ServerLauncher.class": b"launcher",
}


def jar_bytes(entries: Mapping[str, bytes]) -> bytes:
    """Build a deterministic zip archive in memory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            archive.writestr(zipfile.ZipInfo(name, date_time=(2020, 1, 1, 0, 0, 0)), data)
    return buffer.getvalue()


def write_jar(path: Path, entries: Mapping[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(jar_bytes(entries))
    return path


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def read_entries(path: Path) -> dict[str, bytes]:
    with zipfile.ZipFile(path) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


class FakeManifests:
    """Serve a manifest pointing at ``https://downloads.test/<version>/<side>.jar``."""

    def __init__(self, *, checksums: Mapping[str, str] | None = None, fail: bool = False) -> None:
        self.checksums = dict(checksums or {})
        self.fail = fail
        self.resolved: list[str] = []

    def resolve(self, version: str) -> VersionManifest:
        self.resolved.append(version)
        if self.fail:
            raise ManifestError(f"manifest for {version} unavailable")
        return VersionManifest(
            id=version,
            downloads={
                side: VersionDownload(url=f"https://downloads.test/{version}/{side}.jar", sha1=self.checksums.get(side))
                for side in ("client", "server")
            },
        )


class FakeFetcher:
    """Write a canned archive for each requested side and record the calls."""

    def __init__(self, payloads: Mapping[str, bytes] | None = None, *, fail: bool = False) -> None:
        self.payloads = dict(
            payloads or {"client": jar_bytes(CLIENT_ENTRIES), "server": jar_bytes(SERVER_ENTRIES)}
        )
        self.fail = fail
        self.calls: list[tuple[str, Path, str | None]] = []
        self.forced: list[bool] = []

    def fetch(self, url: str, target: Path, *, sha1: str | None = None, force: bool = False) -> Path:
        self.calls.append((url, target, sha1))
        self.forced.append(force)
        if self.fail:
            raise JarDownloadError(f"boom fetching {url}", url=url, code="http_error")
        side = url.rsplit("/", 1)[-1].removesuffix(".jar")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.payloads[side])
        return target

    @property
    def fetched_sides(self) -> list[str]:
        return [url.rsplit("/", 1)[-1].removesuffix(".jar") for url, _, _ in self.calls]


class FakeRemapper:
    def __init__(self, owner: RecordingRemapperFactory) -> None:
        self._owner = owner

    def remap(self, request: RemapRequest) -> None:
        self._owner.requests.append(request)
        if request.to_namespace in self._owner.fail_on:
            request.output.write_bytes(b"half-written")
            raise RuntimeError(f"remap to {request.to_namespace} failed")
        if request.to_namespace in self._owner.skip_output:
            return
        shutil.copyfile(request.input, request.output)

    def finish(self) -> None:
        self._owner.finished += 1


class RecordingRemapperFactory:
    """Remapper factory that copies the input jar to the requested output."""

    def __init__(self, *, fail_on: tuple[str, ...] = (), skip_output: tuple[str, ...] = ()) -> None:
        self.fail_on = set(fail_on)
        self.skip_output = set(skip_output)
        self.requests: list[RemapRequest] = []
        self.created = 0
        self.finished = 0

    def __call__(self) -> FakeRemapper:
        self.created += 1
        return FakeRemapper(self)

    @property
    def namespaces(self) -> list[str]:
        return [request.to_namespace for request in self.requests]
