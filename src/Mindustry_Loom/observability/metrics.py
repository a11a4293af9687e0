"""Prometheus metrics for pipeline stages.

Key Responsibilities:
    - Define the stage duration, outcome, and cache deletion metrics
    - Provide small recording helpers so stages never touch metric objects

Collaborators:
    - Upstream: Pipeline stages and the coordinator
    - Downstream: Any Prometheus scrape or pushgateway the host build wires up

Thread Safety:
    - Thread-safe: all metric operations use atomic Prometheus operations
"""

from prometheus_client import Counter, Histogram

STAGE_DURATION_SECONDS = Histogram(
    "mindustry_loom_stage_duration_seconds",
    "Duration of pipeline stages",
    ["stage"],
    buckets=[0.01, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0],
)

STAGE_OUTCOMES_TOTAL = Counter(
    "mindustry_loom_stage_outcomes_total",
    "Pipeline stage outcomes",
    ["stage", "outcome"],
)

ARTIFACT_DELETIONS_TOTAL = Counter(
    "mindustry_loom_artifact_deletions_total",
    "Cached artifacts deleted by invalidation or failure cleanup",
    ["artifact", "reason"],
)


def observe_stage_duration(stage: str, duration_seconds: float) -> None:
    STAGE_DURATION_SECONDS.labels(stage).observe(duration_seconds)


def record_stage_outcome(stage: str, outcome: str) -> None:
    """Record a stage outcome: cached, computed, degraded or failed."""
    STAGE_OUTCOMES_TOTAL.labels(stage, outcome).inc()


def record_artifact_deletion(artifact: str, reason: str) -> None:
    ARTIFACT_DELETIONS_TOTAL.labels(artifact, reason).inc()


__all__ = [
    "ARTIFACT_DELETIONS_TOTAL",
    "STAGE_DURATION_SECONDS",
    "STAGE_OUTCOMES_TOTAL",
    "observe_stage_duration",
    "record_artifact_deletion",
    "record_stage_outcome",
]
