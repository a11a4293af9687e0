"""Checksum-verified jar downloads.

Key Responsibilities:
    - Stream a remote archive to disk through a temporary sibling file
    - Verify the SHA-1 checksum before the target path is replaced
    - Skip the network entirely when the target already matches its checksum

Collaborators:
    - Upstream: The acquisition stage decides whether to call :meth:`JarDownloader.fetch`
    - Downstream: ``httpx`` for transport and ``tenacity`` for per-request retries

Side Effects:
    - Writes ``<target>.part`` while streaming and atomically renames it
"""

from __future__ import annotations

import hashlib
import os
import time
from pathlib import Path
from typing import Protocol

import httpx
import structlog
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from Mindustry_Loom.utils.hashing import matches_checksum

logger = structlog.get_logger(__name__)


class JarDownloadError(RuntimeError):
    """Raised when a jar cannot be fetched or fails checksum verification."""

    def __init__(self, message: str, *, url: str, code: str = "unknown", retryable: bool = False) -> None:
        super().__init__(message)
        self.url = url
        self.code = code
        self.retryable = retryable


class Fetcher(Protocol):
    """External download capability consumed by the acquisition stage."""

    def fetch(self, url: str, target: Path, *, sha1: str | None = None, force: bool = False) -> Path: ...


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return isinstance(exc, httpx.TransportError)


class JarDownloader:
    """Download archives with retry and checksum verification."""

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        timeout: float = 60.0,
        max_attempts: int = 3,
        backoff_initial: float = 1.0,
        backoff_max: float = 10.0,
        chunk_size: int = 1024 * 512,
        user_agent: str = "Mindustry-Loom/1.0",
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None
        self._chunk_size = max(4096, chunk_size)
        self._headers = {"User-Agent": user_agent, "Accept": "application/java-archive,application/octet-stream"}
        self._retry = Retrying(
            stop=stop_after_attempt(max(1, max_attempts)),
            wait=wait_exponential(multiplier=backoff_initial, max=max(backoff_initial, backoff_max)),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

    def fetch(self, url: str, target: Path, *, sha1: str | None = None, force: bool = False) -> Path:
        """Ensure ``target`` holds the archive at ``url``.

        When ``sha1`` is given and the existing file already matches it, no
        request is made unless ``force`` is set. ``target`` is only replaced
        once the new download is complete and verified; a failed fetch leaves
        it untouched.

        Raises:
            JarDownloadError: On HTTP failure or checksum mismatch.
        """
        if sha1 and not force and matches_checksum(target, sha1):
            logger.debug("download.cache_hit", url=url, path=str(target))
            return target

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        logger.info("download.start", url=url, path=str(target))
        started = time.perf_counter()
        try:
            digest, size = self._retry(self._stream_to, url, partial)
        except httpx.HTTPError as exc:
            partial.unlink(missing_ok=True)
            raise JarDownloadError(
                f"Failed to download {url}: {exc}",
                url=url,
                code="http_error",
                retryable=_is_retryable(exc),
            ) from exc
        except OSError:
            partial.unlink(missing_ok=True)
            raise

        if sha1 and digest != sha1.lower():
            partial.unlink(missing_ok=True)
            raise JarDownloadError(
                f"Checksum mismatch for {url}: expected {sha1}, got {digest}",
                url=url,
                code="checksum_mismatch",
            )

        os.replace(partial, target)
        logger.info(
            "download.completed",
            url=url,
            path=str(target),
            bytes=size,
            duration=round(time.perf_counter() - started, 3),
        )
        return target

    def _stream_to(self, url: str, destination: Path) -> tuple[str, int]:
        hasher = hashlib.sha1()
        size = 0
        with self._client.stream("GET", url, headers=self._headers) as response:
            response.raise_for_status()
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(self._chunk_size):
                    if not chunk:
                        continue
                    hasher.update(chunk)
                    handle.write(chunk)
                    size += len(chunk)
        return hasher.hexdigest(), size

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> JarDownloader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Fetcher", "JarDownloadError", "JarDownloader"]
