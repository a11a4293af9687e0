"""Mapping-table provider.

Only the header of a tiny mappings file is inspected (to learn its namespaces);
the body is handed to the remap capability untouched. The provider also owns
derived files, a copy of the mappings with extra class rows layered on top,
which :meth:`TinyMappingsProvider.clean_files` discards after a failed remap.
"""

from __future__ import annotations

import hashlib
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from Mindustry_Loom.models.identity import MappingIdentity

logger = structlog.get_logger(__name__)


class MappingsError(RuntimeError):
    """Raised when a mappings file is missing or its header is unreadable."""


@dataclass(frozen=True, slots=True)
class MappingTable:
    """A tiny mappings file together with the namespaces it declares."""

    path: Path
    namespaces: tuple[str, ...]
    format_version: int
    derived_dir: Path

    def supports(self, from_namespace: str, to_namespace: str) -> bool:
        return from_namespace in self.namespaces and to_namespace in self.namespaces

    def layered(self, extra_classes: Mapping[str, str], from_namespace: str) -> Path:
        """Return a mappings file with ``extra_classes`` appended as class rows.

        Each extra row keeps the original name in ``from_namespace`` and uses the
        replacement name in every other namespace. The file name carries a digest
        of the source location, its size and mtime, and the extra rows, so a
        derived file is only reused for exactly the same inputs.
        """
        if not extra_classes:
            return self.path
        if from_namespace not in self.namespaces:
            raise MappingsError(f"Namespace '{from_namespace}' not declared in {self.path}")
        stat = self.path.stat()
        key = [
            str(self.path.resolve()),
            str(stat.st_size),
            str(stat.st_mtime_ns),
            from_namespace,
            *(f"{k}={v}" for k, v in sorted(extra_classes.items())),
        ]
        digest = hashlib.sha1("|".join(key).encode()).hexdigest()[:16]
        target = self.derived_dir / f"{self.path.stem}-{digest}.tiny"
        if target.is_file():
            return target

        prefix = "c" if self.format_version == 2 else "CLASS"
        rows = []
        for source, replacement in sorted(extra_classes.items()):
            names = [source if ns == from_namespace else replacement for ns in self.namespaces]
            rows.append("\t".join([prefix, *names]))

        self.derived_dir.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        with self.path.open("rb") as src, partial.open("wb") as dst:
            shutil.copyfileobj(src, dst)
            if not self._ends_with_newline():
                dst.write(b"\n")
            dst.write(("\n".join(rows) + "\n").encode("utf-8"))
        partial.replace(target)
        logger.debug("mappings.layered", source=str(self.path), path=str(target), rows=len(rows))
        return target

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as handle:
            handle.seek(0, 2)
            if handle.tell() == 0:
                return True
            handle.seek(-1, 2)
            return handle.read(1) == b"\n"


class MappingsProvider(Protocol):
    """External mapping-table lookup consumed by the remap stage."""

    identity: MappingIdentity

    @property
    def tiny_mappings(self) -> Path: ...

    def get_mappings(self) -> MappingTable: ...

    def clean_files(self) -> None: ...


class TinyMappingsProvider:
    """Serve a tiny v1/v2 mappings file from disk."""

    def __init__(self, tiny_mappings: Path, identity: MappingIdentity, *, derived_dir: Path) -> None:
        self._tiny_mappings = tiny_mappings
        self.identity = identity
        self.derived_dir = derived_dir
        self._table: MappingTable | None = None

    @property
    def tiny_mappings(self) -> Path:
        return self._tiny_mappings

    @property
    def scoped_dir(self) -> Path:
        """Derived files of this mapping identity; no other identity writes here."""
        return self.derived_dir / self.identity.key

    def get_mappings(self) -> MappingTable:
        if self._table is None:
            self._table = self._load()
        return self._table

    def _load(self) -> MappingTable:
        try:
            with self._tiny_mappings.open("r", encoding="utf-8") as handle:
                header = handle.readline().rstrip("\r\n").split("\t")
        except OSError as exc:
            raise MappingsError(f"Unable to read mappings {self._tiny_mappings}: {exc}") from exc

        if len(header) >= 5 and header[0] == "tiny" and header[1] == "2":
            version, namespaces = 2, tuple(header[3:])
        elif len(header) >= 3 and header[0] == "v1":
            version, namespaces = 1, tuple(header[1:])
        else:
            raise MappingsError(f"Unrecognised tiny mappings header in {self._tiny_mappings}")
        logger.debug("mappings.loaded", path=str(self._tiny_mappings), namespaces=namespaces)
        return MappingTable(
            path=self._tiny_mappings,
            namespaces=namespaces,
            format_version=version,
            derived_dir=self.scoped_dir,
        )

    def clean_files(self) -> None:
        """Drop derived mapping files and the cached header."""
        self._table = None
        if not self.scoped_dir.is_dir():
            return
        for derived in self.scoped_dir.glob("*.tiny*"):
            derived.unlink(missing_ok=True)
            logger.debug("mappings.derived.deleted", path=str(derived))


__all__ = ["MappingTable", "MappingsError", "MappingsProvider", "TinyMappingsProvider"]
