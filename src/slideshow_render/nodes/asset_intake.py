"""Asset intake node — downloads and validates required inputs, resolves theme assets."""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import structlog

from slideshow_render.assets.validator import validate_asset
from slideshow_render.config import settings
from slideshow_render.errors import AssetFetchFailed, AssetInvalid, InputMissing, RenderError
from slideshow_render.graph.state import RenderJobState
from slideshow_render.models.media import AssetBundle, MediaKind, MediaRef, ValidatedAsset
from slideshow_render.models.request import RenderRequest
from slideshow_render.services import RenderServices

logger = structlog.get_logger()


def validate_request(request: RenderRequest) -> None:
    """Reject requests missing a required field before any download starts.

    Raises:
        InputMissing: Narration, images or aspect ratio absent.
    """
    if not (request.narration_audio or "").strip():
        raise InputMissing("narrationAudio is required")
    if not request.images or any(not (img or "").strip() for img in request.images):
        raise InputMissing("images must be a non-empty list of URLs")
    if not request.aspect_ratio:
        raise InputMissing("aspectRatio is required")


def _suffix(locator: str, fallback: str) -> str:
    return PurePosixPath(urlparse(locator).path).suffix.lower() or fallback


async def fetch_required(
    services: RenderServices,
    kind: MediaKind,
    locator: str,
    dest: Path,
    semaphore: asyncio.Semaphore,
) -> ValidatedAsset:
    """Fetch and validate a required input; any failure is fatal for the job."""
    ref = MediaRef(kind=kind, source=locator, local_path=str(dest))
    async with semaphore:
        blob = await services.fetcher.fetch(locator, dest)
    asset = await asyncio.to_thread(validate_asset, blob, ref, prober=services.prober)
    if not asset.valid:
        raise AssetInvalid(f"{kind.value} {locator} is not usable: {asset.reason}")
    return asset


async def fetch_optional(
    services: RenderServices,
    kind: MediaKind,
    locator: str,
    dest: Path,
    semaphore: asyncio.Semaphore,
) -> Optional[ValidatedAsset]:
    """Fetch and validate an optional input; failures degrade to None."""
    try:
        return await fetch_required(services, kind, locator, dest, semaphore)
    except (AssetFetchFailed, AssetInvalid) as exc:
        logger.warning("intake.optional_dropped", kind=kind.value, source=locator, error=str(exc))
        return None


def _first_render_error(group: BaseExceptionGroup) -> Optional[RenderError]:
    """Return the earliest RenderError in *group*, or None when it holds something else."""
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            exc = _first_render_error(exc)
        if isinstance(exc, RenderError):
            return exc
    return None


def make_ingest_assets(services: RenderServices):
    async def ingest_assets(state: RenderJobState) -> dict:
        """Download images and narration, and resolve ambience/overlay/end card, concurrently."""
        job_id = state["job_id"]
        request = state["request"]
        work_dir = Path(state["work_dir"])
        logger.info("ingest_assets.start", job_id=job_id, images=len(request["images"]))

        semaphore = asyncio.Semaphore(max(1, settings.max_concurrent_downloads))
        image_coros = [
            fetch_required(
                services,
                MediaKind.IMAGE,
                url,
                work_dir / f"image_{i:03d}{_suffix(url, '.img')}",
                semaphore,
            )
            for i, url in enumerate(request["images"])
        ]
        narration_url = request["narration_audio"]
        narration_coro = fetch_required(
            services,
            MediaKind.NARRATION,
            narration_url,
            work_dir / f"narration{_suffix(narration_url, '.audio')}",
            semaphore,
        )

        async def resolve(kind: MediaKind) -> Optional[ValidatedAsset]:
            async with semaphore:
                return await services.resolver.resolve_theme_asset(
                    request.get("theme"), kind, None, job_id=job_id, work_dir=work_dir
                )

        async def end_card() -> Optional[ValidatedAsset]:
            if not request.get("use_end_card"):
                return None
            if not settings.end_card_path:
                logger.warning("ingest_assets.end_card_unconfigured", job_id=job_id)
                return None
            path = settings.end_card_path
            return await fetch_optional(
                services, MediaKind.END_CARD, path, work_dir / f"end_card{_suffix(path, '.img')}", semaphore
            )

        try:
            async with asyncio.TaskGroup() as group:
                image_tasks = [group.create_task(coro) for coro in image_coros]
                narration_task = group.create_task(narration_coro)
                ambience_task = group.create_task(resolve(MediaKind.AMBIENCE))
                overlay_task = group.create_task(resolve(MediaKind.OVERLAY))
                card_task = group.create_task(end_card())
        except ExceptionGroup as failures:
            # siblings are cancelled and awaited by the time the group exits
            exc = _first_render_error(failures)
            if exc is None:
                raise
            logger.warning("ingest_assets.failed", job_id=job_id, error_kind=exc.kind.value, error=exc.message)
            return {"error": exc.message, "error_kind": exc.kind.value}

        images = [task.result() for task in image_tasks]
        narration = narration_task.result()
        ambience, overlay, card = ambience_task.result(), overlay_task.result(), card_task.result()
        bundle = AssetBundle(images=images, narration=narration, ambience=ambience, overlay=overlay, end_card=card)
        logger.info(
            "ingest_assets.done",
            job_id=job_id,
            narration_sec=narration.duration,
            has_ambience=ambience is not None,
            has_overlay=overlay is not None,
            has_end_card=card is not None,
        )
        return {"assets": bundle.model_dump(mode="json")}

    return ingest_assets
