"""Version manifest resolution for raw game jars."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = structlog.get_logger(__name__)


class VersionDownload(BaseModel):
    """One downloadable archive listed in a version manifest."""

    model_config = ConfigDict(frozen=True)

    url: str
    sha1: str | None = Field(default=None, pattern=r"^[0-9a-fA-F]{40}$")
    size: int | None = Field(default=None, ge=0)


class VersionManifest(BaseModel):
    """Download locations for the client and server builds of one version."""

    model_config = ConfigDict(frozen=True)

    id: str
    downloads: dict[str, VersionDownload]

    def download(self, side: str) -> VersionDownload:
        try:
            return self.downloads[side]
        except KeyError as exc:
            raise ManifestError(f"Version manifest '{self.id}' has no '{side}' download") from exc


class ManifestError(RuntimeError):
    """Raised when a version manifest cannot be loaded or is malformed."""


class ManifestResolver(Protocol):
    def resolve(self, version: str) -> VersionManifest: ...


class UrlManifestResolver:
    """Load a manifest from an ``http(s)://``, ``file://`` or plain path template.

    ``{version}`` in the template is replaced by the requested version.
    """

    def __init__(self, template: str, *, client: httpx.Client | None = None, timeout: float = 30.0) -> None:
        self._template = template
        self._client = client
        self._timeout = timeout

    def location(self, version: str) -> str:
        return self._template.replace("{version}", version)

    def resolve(self, version: str) -> VersionManifest:
        location = self.location(version)
        parsed = urlparse(location)
        try:
            if parsed.scheme in ("http", "https"):
                raw = self._get(location)
            else:
                path = Path(parsed.path) if parsed.scheme == "file" else Path(location)
                raw = path.expanduser().read_text(encoding="utf-8")
            manifest = VersionManifest.model_validate(json.loads(raw))
        except (httpx.HTTPError, OSError) as exc:
            raise ManifestError(f"Unable to load version manifest from {location}: {exc}") from exc
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ManifestError(f"Invalid version manifest at {location}: {exc}") from exc
        logger.debug("manifest.resolved", version=version, location=location, sides=sorted(manifest.downloads))
        return manifest

    def _get(self, url: str) -> str:
        if self._client is not None:
            response = self._client.get(url)
            response.raise_for_status()
            return response.text
        with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
            response = client.get(url)
            response.raise_for_status()
            return response.text


__all__ = [
    "ManifestError",
    "ManifestResolver",
    "UrlManifestResolver",
    "VersionDownload",
    "VersionManifest",
]
