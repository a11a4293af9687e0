"""Client/server jar merging capability.

The pipeline only relies on the :class:`JarMerger` contract: a context manager
that owns every file handle it opens and releases them on exit, plus a
``merge()`` call that writes the combined archive. :class:`ZipJarMerger` is the
default implementation: a union of both archives where the client entry wins
when the two builds disagree.
"""

from __future__ import annotations

import re
import zipfile
import zlib
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, ContextManager, Protocol

import structlog

logger = structlog.get_logger(__name__)

_SIGNATURE_ENTRY = re.compile(r"^META-INF/[^/]+\.(SF|RSA|DSA|EC)$", re.IGNORECASE)


class JarCorruptionError(RuntimeError):
    """An input archive is structurally malformed."""

    def __init__(self, message: str, *, archive: Path | None = None) -> None:
        super().__init__(message)
        self.archive = archive


class JarMerger(Protocol):
    def merge(self) -> None: ...


MergerFactory = Callable[[Path, Path, Path], ContextManager[JarMerger]]


class ZipJarMerger:
    """Merge two jars into one, client entries taking precedence."""

    def __init__(self, client: Path, server: Path, output: Path) -> None:
        self.client = client
        self.server = server
        self.output = output
        self._stack = ExitStack()
        self._client_zip: zipfile.ZipFile | None = None
        self._server_zip: zipfile.ZipFile | None = None
        self._output_zip: zipfile.ZipFile | None = None

    def __enter__(self) -> ZipJarMerger:
        try:
            self._client_zip = self._stack.enter_context(self._open(self.client))
            self._server_zip = self._stack.enter_context(self._open(self.server))
            self.output.parent.mkdir(parents=True, exist_ok=True)
            self._output_zip = self._stack.enter_context(
                zipfile.ZipFile(self.output, "w", compression=zipfile.ZIP_DEFLATED)
            )
        except BaseException:
            self._stack.close()
            raise
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stack.close()

    @staticmethod
    def _open(path: Path) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(path, "r")
        except zipfile.BadZipFile as exc:
            raise JarCorruptionError(f"Malformed archive {path}: {exc}", archive=path) from exc

    def merge(self) -> None:
        if self._client_zip is None or self._server_zip is None or self._output_zip is None:
            raise RuntimeError("ZipJarMerger must be used as a context manager")
        written: set[str] = set()
        conflicts = 0
        server_names = set(self._server_zip.namelist())

        for info in self._client_zip.infolist():
            if info.filename in written or _SIGNATURE_ENTRY.match(info.filename):
                continue
            data = self._read(self._client_zip, info, self.client)
            if info.filename in server_names and not info.is_dir():
                other = self._read(self._server_zip, self._server_zip.getinfo(info.filename), self.server)
                if other != data:
                    conflicts += 1
            self._output_zip.writestr(info, data)
            written.add(info.filename)

        for info in self._server_zip.infolist():
            if info.filename in written or _SIGNATURE_ENTRY.match(info.filename):
                continue
            self._output_zip.writestr(info, self._read(self._server_zip, info, self.server))
            written.add(info.filename)

        logger.debug(
            "merge.entries",
            output=str(self.output),
            entries=len(written),
            conflicts=conflicts,
        )

    @staticmethod
    def _read(archive: zipfile.ZipFile, info: zipfile.ZipInfo, path: Path) -> bytes:
        try:
            return archive.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise JarCorruptionError(
                f"Malformed entry '{info.filename}' in {path}: {exc}", archive=path
            ) from exc


__all__ = ["JarCorruptionError", "JarMerger", "MergerFactory", "ZipJarMerger"]
