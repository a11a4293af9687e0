"""Fatal error taxonomy for pipeline runs.

Every error aborts the run. None of them is retried by the pipeline; the
message always names the stage and the artifact paths involved so a human can
re-run with enough context.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from Mindustry_Loom.utils.errors import FoundationError


class PipelineError(FoundationError):
    """Base class carrying the failing stage and the artifacts involved."""

    status = 500
    error_type = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        paths: Iterable[Path | str] = (),
        detail: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.stage = stage
        self.paths: tuple[str, ...] = tuple(str(path) for path in paths)
        payload = {"stage": stage, "paths": list(self.paths), **(extra or {})}
        super().__init__(
            message,
            status=self.status,
            detail=detail,
            type=f"urn:mindustry-loom:error:{self.error_type}",
            extra=payload,
        )

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.problem.title}"
        if self.paths:
            text += f" (paths: {', '.join(self.paths)})"
        cause = self.__cause__
        if cause is not None:
            text += f": {type(cause).__name__}: {cause}"
        return text


class MissingInputError(PipelineError):
    """Required raw archive absent while offline."""

    status = 424
    error_type = "missing-input"

    def __init__(self, message: str, *, stage: str, missing: Sequence[Path], present: Sequence[Path] = ()) -> None:
        self.missing = tuple(missing)
        super().__init__(
            message,
            stage=stage,
            paths=[*missing, *present],
            extra={"missing": [str(path) for path in missing]},
        )


class CorruptArchiveError(PipelineError):
    """The merge capability found a malformed archive; raw inputs were deleted."""

    status = 422
    error_type = "corrupt-archive"


class TransformFailureError(PipelineError):
    """Remapping failed or its declared output is missing; paired outputs were deleted."""

    status = 500
    error_type = "transform-failure"


class ConfigurationError(PipelineError):
    """A prerequisite (mapping table, merged jar, download source) is missing."""

    status = 400
    error_type = "configuration"


class TransientIOError(PipelineError):
    """Filesystem or network failure not classified as corruption."""

    status = 503
    error_type = "transient-io"


__all__ = [
    "ConfigurationError",
    "CorruptArchiveError",
    "MissingInputError",
    "PipelineError",
    "TransformFailureError",
    "TransientIOError",
]
