"""Data models shared across the pipeline."""

from .identity import MappingIdentity, PipelineConfig, VersionId

__all__ = ["MappingIdentity", "PipelineConfig", "VersionId"]
