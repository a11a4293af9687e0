"""Command-line entry point.

``mindustry-loom run VERSION`` prepares the merged and remapped jars for a
game version; ``mindustry-loom paths VERSION`` prints where they live.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from Mindustry_Loom.config.settings import AppSettings, load_settings
from Mindustry_Loom.models.identity import MappingIdentity, PipelineConfig
from Mindustry_Loom.pipeline.coordinator import ArtifactPipeline
from Mindustry_Loom.pipeline.errors import PipelineError
from Mindustry_Loom.pipeline.models import PipelineResult
from Mindustry_Loom.storage.layout import CacheLayout
from Mindustry_Loom.utils.logging import configure_logging, configure_tracing

app = typer.Typer(help="Cache, merge and remap game jars", no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)


def _settings(
    *,
    cache_dir: Path | None,
    mappings_name: str | None,
    mappings_version: str | None,
    mappings_file: Path | None,
    log_level: str | None = None,
) -> AppSettings:
    try:
        settings = load_settings()
    except RuntimeError as exc:
        err_console.print(f"❌ {exc}", style="red")
        raise typer.Exit(code=2) from exc

    cache_updates: dict[str, object] = {}
    if cache_dir is not None:
        cache_updates["user_cache"] = cache_dir
    mapping_updates: dict[str, object] = {}
    if mappings_name is not None:
        mapping_updates["name"] = mappings_name
    if mappings_version is not None:
        mapping_updates["version"] = mappings_version
    if mappings_file is not None:
        mapping_updates["path"] = mappings_file

    updates: dict[str, object] = {
        "cache": settings.cache.model_copy(update=cache_updates),
        "mappings": settings.mappings.model_copy(update=mapping_updates),
    }
    if log_level is not None:
        logging_settings = settings.observability.logging.model_copy(update={"level": log_level})
        updates["observability"] = settings.observability.model_copy(update={"logging": logging_settings})
    return settings.model_copy(update=updates)


def _emit(result: PipelineResult, *, title: str, as_json: bool) -> None:
    rows = {
        "merged": result.merged_jar,
        "named": result.named_jar,
        "intermediary": result.intermediary_jar,
        "mapped directory": result.mapped_directory,
    }
    if as_json:
        payload = {key.replace(" ", "_"): str(value) for key, value in rows.items()}
        payload["coordinate"] = result.coordinate
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    table = Table(title=title)
    table.add_column("Artifact", style="cyan")
    table.add_column("Path", style="green", overflow="fold")
    for name, path in rows.items():
        table.add_row(name, str(path))
    table.add_row("coordinate", result.coordinate)
    console.print(table)


@app.command()
def run(
    version: str = typer.Argument(..., help="Game version to prepare"),
    offline: bool = typer.Option(False, "--offline", help="Never touch the network"),
    refresh: bool = typer.Option(False, "--refresh-dependencies", help="Rebuild every cached artifact"),
    share_caches: bool = typer.Option(False, "--share-caches", help="Reuse raw jars from a sibling project"),
    not_root: bool = typer.Option(False, "--not-root", help="This is not the primary project"),
    mappings_name: str | None = typer.Option(None, help="Mapping set name"),
    mappings_version: str | None = typer.Option(None, help="Mapping set version"),
    mappings_file: Path | None = typer.Option(None, help="Tiny mappings file"),
    cache_dir: Path | None = typer.Option(None, help="Cache root directory"),
    log_level: str | None = typer.Option(None, help="Log level"),
    as_json: bool = typer.Option(False, "--json", help="Print paths as JSON"),
) -> None:
    """Acquire, merge and remap the jars for VERSION."""
    settings = _settings(
        cache_dir=cache_dir,
        mappings_name=mappings_name,
        mappings_version=mappings_version,
        mappings_file=mappings_file,
        log_level=log_level,
    )
    configure_logging(settings=settings.observability.logging)
    configure_tracing(settings.service_name, settings.telemetry)

    config = PipelineConfig(
        offline=offline,
        force_refresh=refresh,
        share_caches=share_caches or settings.cache.share_caches,
        root_project=settings.cache.root_project and not not_root,
    )
    pipeline = ArtifactPipeline.from_settings(version, settings, config)
    try:
        result = pipeline.run()
    except PipelineError as exc:
        err_console.print(f"❌ {exc.problem.title}", style="red")
        err_console.print(f"   stage: {exc.stage}", style="red")
        for path in exc.paths:
            err_console.print(f"   path: {path}", style="red")
        if exc.__cause__ is not None:
            err_console.print(f"   cause: {exc.__cause__}", style="red")
        raise typer.Exit(code=1) from exc
    finally:
        fetcher = pipeline.fetcher
        if fetcher is not None and hasattr(fetcher, "close"):
            fetcher.close()

    _emit(result, title=f"Mindustry {version} ({result.mapping.key})", as_json=as_json)


@app.command()
def paths(
    version: str = typer.Argument(..., help="Game version"),
    mappings_name: str | None = typer.Option(None, help="Mapping set name"),
    mappings_version: str | None = typer.Option(None, help="Mapping set version"),
    cache_dir: Path | None = typer.Option(None, help="Cache root directory"),
    as_json: bool = typer.Option(False, "--json", help="Print paths as JSON"),
) -> None:
    """Print the cache paths for VERSION without touching them."""
    settings = _settings(
        cache_dir=cache_dir,
        mappings_name=mappings_name,
        mappings_version=mappings_version,
        mappings_file=None,
    )
    layout = CacheLayout(settings.cache.user_cache, settings.cache.artifact_name)
    identity = MappingIdentity(name=settings.mappings.name, version=settings.mappings.version)
    _emit(PipelineResult.resolve(layout, version, identity), title=f"Cache paths for {version}", as_json=as_json)


if __name__ == "__main__":
    app()
