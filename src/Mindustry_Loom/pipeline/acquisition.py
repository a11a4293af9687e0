"""Acquisition stage: make sure the raw client and server jars are on disk.

This stage only decides *whether* to fetch. Resolving download locations and
streaming bytes belong to the manifest resolver and fetch capability.
"""

from __future__ import annotations

import structlog

from Mindustry_Loom.models.identity import PipelineConfig, VersionId
from Mindustry_Loom.services.download import Fetcher, JarDownloadError
from Mindustry_Loom.services.manifest import ManifestError, ManifestResolver
from Mindustry_Loom.storage.artifacts import ArtifactHandle
from Mindustry_Loom.utils.hashing import matches_checksum

from .errors import ConfigurationError, MissingInputError, TransientIOError
from .models import StageOutcome

logger = structlog.get_logger(__name__)

STAGE = "acquire"


def acquire_raw_jars(
    version: VersionId,
    config: PipelineConfig,
    *,
    client: ArtifactHandle,
    server: ArtifactHandle,
    merged: ArtifactHandle,
    fetcher: Fetcher | None,
    manifests: ManifestResolver | None,
) -> StageOutcome:
    """Ensure both raw archives exist.

    Returns:
        ``CACHED`` when nothing was fetched, ``COMPUTED`` when at least one jar
        was fetched, and ``DEGRADED`` when offline with only the merged jar
        present (the merge stage must then be bypassed).

    Raises:
        MissingInputError: Offline and neither the raw jars nor the merged jar exist.
        ConfigurationError: Online but no version manifest is configured.
        TransientIOError: Manifest or download failure.
    """
    if config.offline:
        return _verify_offline(client, server, merged)

    if (
        config.share_caches
        and not config.root_project
        and client.exists()
        and server.exists()
        and not config.force_refresh
    ):
        # TODO: verify shared jars against the manifest checksum before trusting them
        logger.debug("pipeline.acquire.shared_cache", version=version, client=str(client), server=str(server))
        return StageOutcome.CACHED

    if manifests is None or fetcher is None:
        raise ConfigurationError(
            f"No download source configured for version {version}. Download the game and place "
            f"the desktop and server jars at {client.path} and {server.path} respectively.",
            stage=STAGE,
            paths=[client.path, server.path],
        )

    try:
        manifest = manifests.resolve(version)
        downloads = {side: manifest.download(side) for side in ("client", "server")}
    except ManifestError as exc:
        raise TransientIOError(
            f"Could not resolve downloads for version {version}",
            stage=STAGE,
            paths=[client.path, server.path],
        ) from exc

    fetched = 0
    for handle in (client, server):
        entry = downloads[handle.kind]
        if not config.force_refresh and matches_checksum(handle.path, entry.sha1):
            logger.debug("pipeline.acquire.cache_hit", version=version, artifact=handle.kind, path=str(handle))
            continue
        try:
            fetcher.fetch(entry.url, handle.path, sha1=entry.sha1, force=config.force_refresh)
        except (JarDownloadError, OSError) as exc:
            raise TransientIOError(
                f"Failed to fetch {handle.kind} jar for version {version}",
                stage=STAGE,
                paths=[handle.path],
                extra={"url": entry.url},
            ) from exc
        fetched += 1

    return StageOutcome.COMPUTED if fetched else StageOutcome.CACHED


def _verify_offline(client: ArtifactHandle, server: ArtifactHandle, merged: ArtifactHandle) -> StageOutcome:
    client_present = client.exists()
    server_present = server.exists()
    if client_present and server_present:
        logger.debug("pipeline.acquire.offline", detail="Found client and server jars, presuming up-to-date")
        return StageOutcome.CACHED
    if merged.exists():
        logger.warning(
            "pipeline.acquire.degraded",
            detail="Missing game jar but merged jar present, things might end badly",
            merged=str(merged),
            client_present=client_present,
            server_present=server_present,
        )
        return StageOutcome.DEGRADED
    missing = [handle.path for handle, present in ((client, client_present), (server, server_present)) if not present]
    present = [handle.path for handle, ok in ((client, client_present), (server, server_present)) if ok]
    raise MissingInputError(
        f"Missing jar(s) while offline; Client: {client_present}, Server: {server_present}",
        stage=STAGE,
        missing=missing,
        present=present,
    )


__all__ = ["acquire_raw_jars"]
