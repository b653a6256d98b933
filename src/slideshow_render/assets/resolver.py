"""Asset Resolver: theme → candidate selection, download, validation and fallback.

Selection policy: deterministic per job. The first candidate tried is chosen by
a stable SHA-256 hash of ``"{job_id}:{kind}"``, the rest of the rule's
candidates follow in rotation order, then the configured default asset. A retry
of the same job therefore resolves the same asset.
"""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import structlog

from slideshow_render.assets.themes import DEFAULT_THEME_TABLE, ThemeTable, load_theme_table, match_rule
from slideshow_render.assets.validator import MediaProber, validate_asset
from slideshow_render.config import settings
from slideshow_render.errors import AssetFetchFailed
from slideshow_render.models.media import MediaKind, MediaRef, ValidatedAsset
from slideshow_render.tools.http_fetch import AssetFetcher, join_locator

logger = structlog.get_logger()


def stable_index(job_id: str, kind: MediaKind, count: int) -> int:
    digest = hashlib.sha256(f"{job_id}:{kind.value}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % count


def candidate_order(candidates: list[str], job_id: str, kind: MediaKind) -> list[str]:
    """Rotate *candidates* so the hash-selected one comes first."""
    if not candidates:
        return []
    start = stable_index(job_id, kind, len(candidates))
    return candidates[start:] + candidates[:start]


def _suffix(identifier: str) -> str:
    return PurePosixPath(urlparse(identifier).path).suffix.lower()


class ThemeAssetResolver:
    def __init__(
        self,
        fetcher: AssetFetcher,
        table: Optional[ThemeTable] = None,
        base_url: Optional[str] = None,
        defaults: Optional[dict[MediaKind, str]] = None,
        prober: Optional[MediaProber] = None,
    ):
        self.fetcher = fetcher
        if table is None:
            table = load_theme_table(settings.theme_rules_path) if settings.theme_rules_path else DEFAULT_THEME_TABLE
        self.table = table
        self.base_url = base_url if base_url is not None else settings.asset_base_url
        self.defaults = defaults if defaults is not None else {
            MediaKind.AMBIENCE: settings.default_ambience,
            MediaKind.OVERLAY: settings.default_overlay,
        }
        self.prober = prober

    def candidates_for(self, theme: Optional[str], kind: MediaKind, job_id: str) -> list[str]:
        """Ordered identifiers to try for *theme*, default asset last."""
        rule = match_rule(theme, self.table)
        ordered = candidate_order(rule.candidates(kind), job_id, kind)
        default = self.defaults.get(kind)
        if default and default not in ordered:
            ordered.append(default)
        return ordered

    async def resolve_theme_asset(
        self,
        theme: Optional[str],
        kind: MediaKind,
        fmt: Optional[str],
        *,
        job_id: str,
        work_dir: Path,
    ) -> Optional[ValidatedAsset]:
        """Return the first candidate that downloads and validates, or None.

        Never raises: ambience and overlay are optional, so exhausting every
        candidate is a valid terminal state.
        """
        candidates = self.candidates_for(theme, kind, job_id)
        for i, identifier in enumerate(candidates):
            locator = join_locator(self.base_url, identifier)
            suffix = _suffix(identifier) or (f".{fmt}" if fmt else "")
            dest = work_dir / f"{kind.value}_{i}{suffix}"
            ref = MediaRef(kind=kind, source=locator, local_path=str(dest))
            try:
                blob = await self.fetcher.fetch(locator, dest)
            except AssetFetchFailed as exc:
                logger.warning("resolver.fetch_failed", job_id=job_id, kind=kind.value, candidate=identifier, error=str(exc))
                continue
            except Exception:
                logger.exception("resolver.fetch_error", job_id=job_id, kind=kind.value, candidate=identifier)
                continue

            asset = await asyncio.to_thread(
                validate_asset, blob, ref, expected_format=fmt or suffix.lstrip(".") or None, prober=self.prober
            )
            if asset.valid:
                logger.info("resolver.selected", job_id=job_id, kind=kind.value, candidate=identifier, attempt=i + 1)
                return asset
            logger.warning("resolver.invalid", job_id=job_id, kind=kind.value, candidate=identifier, reason=asset.reason)

        logger.warning("resolver.no_asset", job_id=job_id, kind=kind.value, theme=theme, tried=len(candidates))
        return None
