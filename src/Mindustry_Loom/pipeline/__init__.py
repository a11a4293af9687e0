"""Acquire, merge and remap stages plus the coordinator that runs them."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_ATTRIBUTE_MAP: dict[str, tuple[str, str]] = {
    "ArtifactPipeline": ("Mindustry_Loom.pipeline.coordinator", "ArtifactPipeline"),
    "ConfigurationError": ("Mindustry_Loom.pipeline.errors", "ConfigurationError"),
    "CorruptArchiveError": ("Mindustry_Loom.pipeline.errors", "CorruptArchiveError"),
    "MissingInputError": ("Mindustry_Loom.pipeline.errors", "MissingInputError"),
    "PipelineError": ("Mindustry_Loom.pipeline.errors", "PipelineError"),
    "TransformFailureError": ("Mindustry_Loom.pipeline.errors", "TransformFailureError"),
    "TransientIOError": ("Mindustry_Loom.pipeline.errors", "TransientIOError"),
    "PipelineArtifacts": ("Mindustry_Loom.pipeline.models", "PipelineArtifacts"),
    "PipelineResult": ("Mindustry_Loom.pipeline.models", "PipelineResult"),
    "PipelineState": ("Mindustry_Loom.pipeline.models", "PipelineState"),
    "StageOutcome": ("Mindustry_Loom.pipeline.models", "StageOutcome"),
    "acquire_raw_jars": ("Mindustry_Loom.pipeline.acquisition", "acquire_raw_jars"),
    "merge_jars": ("Mindustry_Loom.pipeline.merge", "merge_jars"),
    "remap_merged_jar": ("Mindustry_Loom.pipeline.remap", "remap_merged_jar"),
    "JSR_TO_JETBRAINS": ("Mindustry_Loom.pipeline.remap", "JSR_TO_JETBRAINS"),
}

__all__ = sorted(_ATTRIBUTE_MAP)


def __getattr__(name: str) -> Any:
    try:
        module_name, attr_name = _ATTRIBUTE_MAP[name]
    except KeyError as exc:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'") from exc

    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(globals().keys() | _ATTRIBUTE_MAP.keys())
