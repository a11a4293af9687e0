"""Symbol remapping capability.

The remap stage talks to a :class:`Remapper`: one ``remap`` call per output
followed by ``finish`` to release whatever the remapper holds.
:func:`remapper_session` guarantees ``finish`` runs on every exit path.
:class:`TinyRemapperProcess` is the default, running the tiny-remapper jar
with ``java``.
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Protocol

import structlog

from .mappings import MappingTable

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RemapOptions:
    """Knobs passed to every remap invocation."""

    non_class_copy_mode: Literal["unchanged", "fixmeta", "skipmeta"] = "unchanged"
    rename_invalid_locals: bool = True
    rebuild_source_filenames: bool = True


@dataclass(frozen=True, slots=True)
class RemapRequest:
    input: Path
    output: Path
    mappings: MappingTable
    from_namespace: str
    to_namespace: str
    extra_classes: Mapping[str, str] = field(default_factory=dict)
    classpath: tuple[Path, ...] = ()
    options: RemapOptions = field(default_factory=RemapOptions)


class Remapper(Protocol):
    def remap(self, request: RemapRequest) -> None: ...

    def finish(self) -> None: ...


RemapperFactory = Callable[[], Remapper]


@contextmanager
def remapper_session(factory: RemapperFactory) -> Iterator[Remapper]:
    """Create a remapper and always finish it, including on exceptions."""
    remapper = factory()
    try:
        yield remapper
    finally:
        remapper.finish()


class RemapProcessError(RuntimeError):
    """The tiny-remapper process could not be started or exited non-zero."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class TinyRemapperProcess:
    """Run ``java -jar tiny-remapper.jar`` for a single remap request."""

    def __init__(
        self,
        jar: Path | None,
        *,
        java: str = "java",
        threads: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._jar = jar
        self._java = java
        self._threads = threads
        self._timeout = timeout
        self._finished = False

    def command(self, request: RemapRequest) -> list[str]:
        if self._jar is None:
            raise RemapProcessError("No tiny-remapper jar configured (set ML_REMAPPER__JAR)")
        mappings = request.mappings.layered(request.extra_classes, request.from_namespace)
        command = [
            self._java,
            "-jar",
            str(self._jar),
            str(request.input),
            str(request.output),
            str(mappings),
            request.from_namespace,
            request.to_namespace,
            *(str(path) for path in request.classpath),
            f"--nonClassCopyMode={request.options.non_class_copy_mode}",
        ]
        if request.options.rename_invalid_locals:
            command.append("--renameInvalidLocals")
        if request.options.rebuild_source_filenames:
            command.append("--rebuildSourceFilenames")
        if self._threads:
            command.append(f"--threads={self._threads}")
        return command

    def remap(self, request: RemapRequest) -> None:
        if self._finished:
            raise RuntimeError("Remapper already finished")
        if not request.mappings.supports(request.from_namespace, request.to_namespace):
            raise RemapProcessError(
                f"Mappings {request.mappings.path} do not declare "
                f"{request.from_namespace} -> {request.to_namespace}"
            )
        command = self.command(request)
        logger.debug("remap.process.start", command=command)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise RemapProcessError(f"Unable to run tiny-remapper: {exc}") from exc
        if completed.returncode != 0:
            stderr = completed.stderr.strip()
            raise RemapProcessError(
                f"tiny-remapper exited with status {completed.returncode}: {stderr[-2000:]}",
                returncode=completed.returncode,
                stderr=stderr,
            )

    def finish(self) -> None:
        self._finished = True


__all__ = [
    "RemapOptions",
    "RemapProcessError",
    "RemapRequest",
    "Remapper",
    "RemapperFactory",
    "TinyRemapperProcess",
    "remapper_session",
]
