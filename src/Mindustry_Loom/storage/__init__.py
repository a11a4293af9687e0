"""Cache layout and artifact handles."""

from .artifacts import ArtifactHandle
from .layout import ArtifactKind, CacheLayout

__all__ = ["ArtifactHandle", "ArtifactKind", "CacheLayout"]
