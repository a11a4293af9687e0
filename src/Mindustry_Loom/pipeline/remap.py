"""Remap stage: produce the named and intermediary jars from the merged jar."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import MappingProxyType

import structlog

from Mindustry_Loom.models.identity import PipelineConfig
from Mindustry_Loom.services.mappings import MappingsProvider
from Mindustry_Loom.services.remap import RemapOptions, RemapperFactory, RemapRequest, remapper_session
from Mindustry_Loom.storage.artifacts import ArtifactHandle

from .errors import ConfigurationError, TransformFailureError
from .models import StageOutcome

logger = structlog.get_logger(__name__)

STAGE = "remap"

FROM_NAMESPACE = "official"
TARGET_NAMESPACES = ("named", "intermediary")

JSR_TO_JETBRAINS = MappingProxyType(
    {
        "javax/annotation/Nullable": "org/jetbrains/annotations/Nullable",
        "javax/annotation/Nonnull": "org/jetbrains/annotations/NotNull",
        "javax/annotation/concurrent/Immutable": "org/jetbrains/annotations/Unmodifiable",
    }
)

REMAP_OPTIONS = RemapOptions(
    non_class_copy_mode="unchanged",
    rename_invalid_locals=True,
    rebuild_source_filenames=True,
)


def remap_merged_jar(
    config: PipelineConfig,
    *,
    merged: ArtifactHandle,
    named: ArtifactHandle,
    intermediary: ArtifactHandle,
    mappings: MappingsProvider,
    remapper_factory: RemapperFactory,
    classpath: Sequence[Path] = (),
) -> StageOutcome:
    """Remap ``merged`` twice, once per target namespace.

    Each namespace is written to a ``.part`` sibling. Both are moved into
    place only after both remaps succeed, so an interrupted run leaves no
    output that a later run would take for a cache hit. On failure both
    outputs are deleted together and the provider's derived mapping files are
    discarded.
    """
    if not mappings.tiny_mappings.exists():
        raise ConfigurationError("mappings file not found", stage=STAGE, paths=[mappings.tiny_mappings])
    if not merged.exists():
        raise ConfigurationError("input merged jar not found", stage=STAGE, paths=[merged.path])

    if named.exists() and intermediary.exists() and not config.force_refresh:
        logger.debug("pipeline.remap.cache_hit", named=str(named), intermediary=str(intermediary))
        return StageOutcome.CACHED

    named.delete(reason="invalidate")
    intermediary.delete(reason="invalidate")
    named.path.parent.mkdir(parents=True, exist_ok=True)

    outputs = {"named": named, "intermediary": intermediary}
    parts = {namespace: handle.partial() for namespace, handle in outputs.items()}
    try:
        table = mappings.get_mappings()
        for to_namespace in TARGET_NAMESPACES:
            output = parts[to_namespace]
            logger.info(
                "pipeline.remap.start",
                from_namespace=FROM_NAMESPACE,
                to_namespace=to_namespace,
                input=str(merged),
                output=str(outputs[to_namespace]),
            )
            with remapper_session(remapper_factory) as remapper:
                remapper.remap(
                    RemapRequest(
                        input=merged.path,
                        output=output.path,
                        mappings=table,
                        from_namespace=FROM_NAMESPACE,
                        to_namespace=to_namespace,
                        extra_classes=JSR_TO_JETBRAINS,
                        classpath=tuple(classpath),
                        options=REMAP_OPTIONS,
                    )
                )
    except Exception as exc:
        _discard_outputs(outputs, parts, mappings)
        logger.error("pipeline.remap.failed", input=str(merged), mappings=str(mappings.tiny_mappings), error=str(exc))
        raise TransformFailureError(
            f"Failed to remap JAR {merged.path} with mappings from {mappings.tiny_mappings}",
            stage=STAGE,
            paths=[merged.path, named.path, intermediary.path],
        ) from exc
    except BaseException:
        _discard_outputs(outputs, parts, mappings)
        raise

    missing = [outputs[namespace] for namespace in TARGET_NAMESPACES if not parts[namespace].exists()]
    if missing:
        _discard_outputs(outputs, parts, mappings)
        raise TransformFailureError(
            f"{missing[0].kind} jar not found after remapping",
            stage=STAGE,
            paths=[handle.path for handle in missing],
        )
    for namespace in TARGET_NAMESPACES:
        os.replace(parts[namespace].path, outputs[namespace].path)
    logger.info("pipeline.remap.completed", named=str(named), intermediary=str(intermediary))
    return StageOutcome.COMPUTED


def _discard_outputs(
    outputs: Mapping[str, ArtifactHandle],
    parts: Mapping[str, ArtifactHandle],
    mappings: MappingsProvider,
) -> None:
    for handle in (*outputs.values(), *parts.values()):
        handle.delete(reason="failure")
    try:
        mappings.clean_files()
    except OSError as exc:
        logger.warning("pipeline.remap.cleanup_failed", mappings=str(mappings.tiny_mappings), error=str(exc))


__all__ = ["FROM_NAMESPACE", "JSR_TO_JETBRAINS", "TARGET_NAMESPACES", "remap_merged_jar"]
