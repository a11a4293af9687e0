"""Merge stage: combine the raw client and server jars into one archive."""

from __future__ import annotations

import os
import zipfile

import structlog

from Mindustry_Loom.models.identity import PipelineConfig
from Mindustry_Loom.services.merge import JarCorruptionError, MergerFactory
from Mindustry_Loom.storage.artifacts import ArtifactHandle

from .errors import CorruptArchiveError, MissingInputError, PipelineError, TransientIOError
from .models import StageOutcome

logger = structlog.get_logger(__name__)

STAGE = "merge"

CORRUPTION_ERRORS = (JarCorruptionError, zipfile.BadZipFile)


def merge_jars(
    config: PipelineConfig,
    *,
    client: ArtifactHandle,
    server: ArtifactHandle,
    merged: ArtifactHandle,
    merger_factory: MergerFactory,
) -> StageOutcome:
    """Produce ``merged`` unless it already exists and no refresh was requested.

    The merger writes a ``.part`` sibling that only replaces ``merged`` once
    ``merge()`` returns, so a killed run never leaves a truncated merged jar.
    A corruption-class failure deletes both raw jars so the next run fetches
    them again.
    """
    if merged.exists() and not config.force_refresh:
        logger.debug("pipeline.merge.cache_hit", merged=str(merged))
        return StageOutcome.CACHED

    missing = [handle.path for handle in (client, server) if not handle.exists()]
    if missing:
        raise MissingInputError(
            "Raw jars must exist before merging",
            stage=STAGE,
            missing=missing,
        )

    partial = merged.partial()
    logger.info("pipeline.merge.start", client=str(client), server=str(server), merged=str(merged))
    try:
        with merger_factory(client.path, server.path, partial.path) as merger:
            merger.merge()
        if not partial.exists():
            raise PipelineError("Merge reported success but wrote no merged jar", stage=STAGE, paths=[merged.path])
        os.replace(partial.path, merged.path)
    except PipelineError:
        partial.delete(reason="partial")
        raise
    except CORRUPTION_ERRORS as exc:
        partial.delete(reason="partial")
        client.delete(reason="corrupt")
        server.delete(reason="corrupt")
        logger.error(
            "pipeline.merge.corrupt",
            detail="Could not merge JARs! Deleting source JARs - please re-run the command and move on.",
            client=str(client),
            server=str(server),
            error=str(exc),
        )
        raise CorruptArchiveError(
            "Could not merge jars; the raw jars were deleted, re-run to fetch them again",
            stage=STAGE,
            paths=[client.path, server.path],
        ) from exc
    except OSError as exc:
        partial.delete(reason="partial")
        raise TransientIOError("I/O failure while merging jars", stage=STAGE, paths=[merged.path]) from exc
    except BaseException:
        partial.delete(reason="partial")
        raise

    logger.info("pipeline.merge.completed", merged=str(merged))
    return StageOutcome.COMPUTED


__all__ = ["CORRUPTION_ERRORS", "merge_jars"]
