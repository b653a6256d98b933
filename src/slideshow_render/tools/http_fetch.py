"""Asset downloads: httpx fetch with bounded exponential-backoff retries."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx
import structlog

from slideshow_render.config import settings
from slideshow_render.errors import AssetFetchFailed

logger = structlog.get_logger()

# Client errors that signal a transient condition (timeout, rate limit)
RETRYABLE_CLIENT_STATUS = frozenset({408, 429})


def is_remote(locator: str) -> bool:
    return urlparse(locator).scheme in ("http", "https")


def join_locator(base: str, identifier: str) -> str:
    """Resolve an asset identifier against the asset-base locator."""
    if is_remote(identifier) or identifier.startswith("file://"):
        return identifier
    if is_remote(base):
        return f"{base.rstrip('/')}/{identifier.lstrip('/')}"
    if Path(identifier).is_absolute():
        return identifier
    return str(Path(base) / identifier)


class AssetFetcher:
    """Materialize a URL or local path into a file owned by the job workspace.

    Args:
        retries: Attempts per fetch (network failures, 408, 429 and 5xx only).
        backoff: Base delay in seconds; attempt *n* waits ``backoff * 2**n``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        retries: int | None = None,
        backoff: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.retries = max(1, retries if retries is not None else settings.fetch_retries)
        self.backoff = backoff if backoff is not None else settings.fetch_backoff_seconds
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self.transport = transport

    async def fetch(self, locator: str, dest: Path) -> bytes:
        """Fetch *locator* into *dest* and return its bytes.

        Raises:
            AssetFetchFailed: When the source is unreachable, empty, or rejected.
        """
        if not locator:
            raise AssetFetchFailed("empty asset locator")
        dest.parent.mkdir(parents=True, exist_ok=True)

        if is_remote(locator):
            data = await self._download(locator)
            dest.write_bytes(data)
        else:
            data = await asyncio.to_thread(self._copy_local, locator, dest)

        logger.info("fetch.done", locator=locator, bytes_written=len(data))
        return data

    def _copy_local(self, locator: str, dest: Path) -> bytes:
        source = Path(unquote(urlparse(locator).path)) if locator.startswith("file://") else Path(locator)
        if not source.is_file():
            raise AssetFetchFailed(f"asset not found: {locator}")
        shutil.copyfile(source, dest)
        data = dest.read_bytes()
        if not data:
            raise AssetFetchFailed(f"asset is empty: {locator}")
        return data

    async def _download(self, url: str) -> bytes:
        last_error = ""
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as http:
            for attempt in range(self.retries):
                try:
                    resp = await http.get(url)
                except httpx.HTTPError as exc:
                    last_error = f"{type(exc).__name__}: {exc}"
                else:
                    if resp.status_code < 400:
                        if resp.content:
                            return resp.content
                        last_error = "empty response body"
                    elif resp.status_code < 500 and resp.status_code not in RETRYABLE_CLIENT_STATUS:
                        raise AssetFetchFailed(f"HTTP {resp.status_code} for {url}")
                    else:
                        last_error = f"HTTP {resp.status_code}"

                if attempt + 1 < self.retries:
                    delay = self.backoff * (2**attempt)
                    logger.warning(
                        "fetch.retry", url=url, attempt=attempt + 1, delay=delay, error=last_error
                    )
                    await asyncio.sleep(delay)

        raise AssetFetchFailed(f"giving up on {url} after {self.retries} attempts: {last_error}")
