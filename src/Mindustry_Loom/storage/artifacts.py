"""On-disk artifact handles."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from Mindustry_Loom.observability.metrics import record_artifact_deletion

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ArtifactHandle:
    """A cached archive: where it lives, whether it exists, how to drop it.

    Existence of the backing file is the whole staleness signal; there is no
    separate manifest of cache state.
    """

    kind: str
    path: Path

    def exists(self) -> bool:
        return self.path.is_file()

    def delete(self, *, reason: str) -> bool:
        """Remove the backing file if present. Returns True when a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info("storage.artifact.deleted", artifact=self.kind, path=str(self.path), reason=reason)
        record_artifact_deletion(self.kind, reason)
        return True

    def partial(self) -> ArtifactHandle:
        """Sibling ``.part`` handle that writers fill before moving it onto ``path``."""
        return ArtifactHandle(kind=self.kind, path=self.path.with_name(self.path.name + ".part"))

    def __str__(self) -> str:
        return str(self.path)


__all__ = ["ArtifactHandle"]
