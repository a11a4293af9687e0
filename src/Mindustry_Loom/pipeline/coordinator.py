"""Pipeline coordinator.

Key Responsibilities:
    - Resolve the five artifact paths for one (version, mapping identity) pair
    - Run acquire, merge and remap strictly in order, bypassing merge when
      acquisition degrades to an offline merged-only cache
    - Publish the artifact paths once remapping has succeeded

Collaborators:
    - Upstream: The CLI or an embedding build constructs :class:`ArtifactPipeline`
    - Downstream: Stage functions in this package and the fetch, merge,
      mapping and remap capabilities they receive

Side Effects:
    - Binds a correlation id for the duration of :meth:`ArtifactPipeline.run`
    - Emits one OpenTelemetry span per run and per stage
    - Records stage duration and outcome metrics
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from pathlib import Path
from time import perf_counter

import structlog
from opentelemetry import trace

from Mindustry_Loom.config.settings import AppSettings
from Mindustry_Loom.models.identity import MappingIdentity, PipelineConfig, VersionId
from Mindustry_Loom.observability.metrics import observe_stage_duration, record_stage_outcome
from Mindustry_Loom.services.download import Fetcher, JarDownloader
from Mindustry_Loom.services.manifest import ManifestResolver, UrlManifestResolver
from Mindustry_Loom.services.mappings import MappingsProvider, TinyMappingsProvider
from Mindustry_Loom.services.merge import MergerFactory, ZipJarMerger
from Mindustry_Loom.services.remap import RemapperFactory, TinyRemapperProcess
from Mindustry_Loom.storage.layout import CacheLayout
from Mindustry_Loom.utils.logging import bind_correlation_id, get_correlation_id, reset_correlation_id

from .acquisition import acquire_raw_jars
from .errors import ConfigurationError, PipelineError
from .merge import merge_jars
from .models import PipelineArtifacts, PipelineResult, PipelineState, StageOutcome
from .remap import remap_merged_jar

logger = structlog.get_logger(__name__)
_TRACER = trace.get_tracer(__name__)


class ArtifactPipeline:
    """Produce the merged and remapped jars for one game version.

    Stage functions receive every collaborator explicitly; the pipeline itself
    holds no state beyond its current :class:`PipelineState`.
    """

    def __init__(
        self,
        layout: CacheLayout,
        version: VersionId,
        mappings: MappingsProvider,
        config: PipelineConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        manifests: ManifestResolver | None = None,
        merger_factory: MergerFactory = ZipJarMerger,
        remapper_factory: RemapperFactory | None = None,
        classpath: Sequence[Path] = (),
    ) -> None:
        if not version:
            raise ValueError("version must not be empty")
        self.layout = layout
        self.version = version
        self.mappings = mappings
        self.config = config or PipelineConfig()
        self.fetcher = fetcher
        self.manifests = manifests
        self.merger_factory = merger_factory
        self.remapper_factory = remapper_factory
        self.classpath = tuple(classpath)
        self.artifacts = PipelineArtifacts.resolve(layout, version, self.mapping)
        self._state = PipelineState.ACQUIRE

    @classmethod
    def from_settings(
        cls,
        version: VersionId,
        settings: AppSettings,
        config: PipelineConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
    ) -> ArtifactPipeline:
        """Wire the default capabilities from application settings."""
        layout = CacheLayout(settings.cache.user_cache, settings.cache.artifact_name)
        identity = MappingIdentity(name=settings.mappings.name, version=settings.mappings.version)
        tiny = settings.mappings.path or layout.mappings_directory() / f"{identity.key}.tiny"
        provider = TinyMappingsProvider(tiny, identity, derived_dir=layout.mappings_directory() / "derived")

        download = settings.download
        manifests = UrlManifestResolver(download.manifest_url, timeout=download.timeout) if download.manifest_url else None
        if fetcher is None and manifests is not None:
            fetcher = JarDownloader(
                timeout=download.timeout,
                max_attempts=download.attempts,
                backoff_initial=download.backoff_initial,
                backoff_max=download.backoff_max,
                chunk_size=download.chunk_size,
                user_agent=download.user_agent,
            )

        remapper = settings.remapper

        def remapper_factory() -> TinyRemapperProcess:
            return TinyRemapperProcess(
                remapper.jar,
                java=remapper.java,
                threads=remapper.threads,
                timeout=remapper.timeout,
            )

        if config is None:
            config = PipelineConfig(
                share_caches=settings.cache.share_caches,
                root_project=settings.cache.root_project,
            )
        return cls(
            layout,
            version,
            provider,
            config,
            fetcher=fetcher,
            manifests=manifests,
            remapper_factory=remapper_factory,
            classpath=remapper.classpath,
        )

    @property
    def mapping(self) -> MappingIdentity:
        return self.mappings.identity

    @property
    def state(self) -> PipelineState:
        return self._state

    def result(self) -> PipelineResult:
        """Paths a successful run publishes. Performs no I/O."""
        return PipelineResult.resolve(self.layout, self.version, self.mapping)

    def run(self) -> PipelineResult:
        """Run every stage in order and return the published paths.

        Raises:
            PipelineError: Any stage failure. The state stays at the failing stage.
        """
        self._state = PipelineState.ACQUIRE
        token = None
        if get_correlation_id() is None:
            token = bind_correlation_id(uuid.uuid4().hex)
        started = perf_counter()
        logger.info(
            "pipeline.run.start",
            version=self.version,
            mappings=self.mapping.key,
            offline=self.config.offline,
            force_refresh=self.config.force_refresh,
        )
        try:
            with _TRACER.start_as_current_span("pipeline.run") as span:
                span.set_attribute("pipeline.version", self.version)
                span.set_attribute("pipeline.mappings", self.mapping.key)

                acquired = self._run_stage(PipelineState.ACQUIRE, self._acquire)

                self._state = PipelineState.MERGE
                if acquired is StageOutcome.DEGRADED:
                    logger.info("pipeline.merge.bypassed", version=self.version, merged=str(self.artifacts.merged))
                    record_stage_outcome(PipelineState.MERGE.value, StageOutcome.DEGRADED.value)
                else:
                    self._run_stage(PipelineState.MERGE, self._merge)

                self._state = PipelineState.REMAP
                self._run_stage(PipelineState.REMAP, self._remap)

                self._state = PipelineState.PUBLISHED
                total = perf_counter() - started
                span.set_attribute("pipeline.duration_ms", round(total * 1000, 3))
        finally:
            if token is not None:
                reset_correlation_id(token)

        result = self.result()
        logger.info(
            "pipeline.run.published",
            version=self.version,
            mappings=self.mapping.key,
            named=str(result.named_jar),
            intermediary=str(result.intermediary_jar),
            duration_ms=round(total * 1000, 3),
        )
        return result

    def _run_stage(self, state: PipelineState, stage: Callable[[], StageOutcome]) -> StageOutcome:
        name = state.value
        stage_started = perf_counter()
        outcome = StageOutcome.FAILED
        with _TRACER.start_as_current_span(f"pipeline.{name}") as span:
            span.set_attribute("pipeline.stage", name)
            try:
                outcome = stage()
            except PipelineError as exc:
                logger.warning("pipeline.stage.failure", stage=name, error=str(exc))
                raise
            except Exception as exc:
                logger.warning("pipeline.stage.failure", stage=name, error=repr(exc))
                raise PipelineError("Stage execution failed", stage=name, detail=str(exc)) from exc
            finally:
                duration = perf_counter() - stage_started
                observe_stage_duration(name, duration)
                record_stage_outcome(name, outcome.value)
                span.set_attribute("stage.duration_ms", round(duration * 1000, 3))
                span.set_attribute("stage.outcome", outcome.value)
        logger.info("pipeline.stage.success", stage=name, outcome=outcome.value, duration_ms=round(duration * 1000, 3))
        return outcome

    def _acquire(self) -> StageOutcome:
        return acquire_raw_jars(
            self.version,
            self.config,
            client=self.artifacts.client,
            server=self.artifacts.server,
            merged=self.artifacts.merged,
            fetcher=self.fetcher,
            manifests=self.manifests,
        )

    def _merge(self) -> StageOutcome:
        return merge_jars(
            self.config,
            client=self.artifacts.client,
            server=self.artifacts.server,
            merged=self.artifacts.merged,
            merger_factory=self.merger_factory,
        )

    def _remap(self) -> StageOutcome:
        if self.remapper_factory is None:
            raise ConfigurationError("No remapper configured", stage=PipelineState.REMAP.value)
        return remap_merged_jar(
            self.config,
            merged=self.artifacts.merged,
            named=self.artifacts.mapped,
            intermediary=self.artifacts.intermediary,
            mappings=self.mappings,
            remapper_factory=self.remapper_factory,
            classpath=self.classpath,
        )


__all__ = ["ArtifactPipeline"]
