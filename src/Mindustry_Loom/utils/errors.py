"""Problem-detail payloads attached to every fatal error.

The CLI renders :class:`ProblemDetail` when a run aborts; embedding build
tools can serialise it with :meth:`ProblemDetail.model_dump`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

__all__ = ["ProblemDetail", "FoundationError"]


@dataclass(slots=True)
class ProblemDetail:
    """RFC 7807 shaped description of a failure."""

    title: str
    status: int
    detail: str | None = None
    type: str = "about:blank"
    instance: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def model_dump(self) -> dict[str, Any]:
        payload = {key: value for key, value in asdict(self).items() if value is not None}
        if not payload.get("extra"):
            payload.pop("extra", None)
        return payload


class FoundationError(RuntimeError):
    """Root of the project's exceptions; ``problem`` holds the structured payload."""

    def __init__(
        self,
        message: str,
        *,
        status: int = 500,
        detail: str | None = None,
        type: str = "about:blank",
        instance: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.problem = ProblemDetail(
            title=message,
            status=status,
            detail=detail,
            type=type,
            instance=instance,
            extra=dict(extra or {}),
        )
