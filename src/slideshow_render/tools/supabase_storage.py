"""Supabase Storage upload and render-job status persistence."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import structlog
from supabase import create_client

from slideshow_render.config import settings

logger = structlog.get_logger()


def is_configured() -> bool:
    return bool(settings.supabase_url)


def _get_supabase_client():
    """Create a Supabase client using service_role key."""
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


def _upload_artifact_sync(job_id: str, local_path: str) -> str:
    """Upload the rendered video to Supabase Storage (sync, runs in thread pool)."""
    path = Path(local_path)
    if not path.exists():
        logger.warning("supabase.upload.file_not_found", path=local_path)
        return ""

    client = _get_supabase_client()
    storage_path = f"{job_id}/{path.name}"
    bucket = settings.supabase_storage_bucket

    with open(path, "rb") as f:
        client.storage.from_(bucket).upload(
            storage_path,
            f,
            file_options={"upsert": "true", "content-type": "video/mp4"},
        )

    public_url = f"{settings.supabase_url}/storage/v1/object/public/{bucket}/{storage_path}"
    logger.info("supabase.upload.success", storage_path=storage_path)
    return public_url


async def upload_artifact(job_id: str, local_path: str) -> str:
    """Upload the final artifact and return its public URL ("" when skipped)."""
    if not is_configured():
        logger.info("supabase.upload.skipped", reason="supabase_url not configured")
        return ""
    return await asyncio.to_thread(_upload_artifact_sync, job_id, local_path)


def _update_job_status_sync(job_id: str, status: str, fields: dict[str, Any]) -> None:
    """Upsert the render_jobs row (sync, runs in thread pool)."""
    client = _get_supabase_client()
    client.table(settings.supabase_status_table).upsert(
        {"job_id": job_id, "status": status, **fields},
        on_conflict="job_id",
    ).execute()
    logger.info("supabase.job_status.saved", job_id=job_id, status=status)


async def update_job_status(job_id: str, status: str, **fields: Any) -> None:
    """Report job status to the status table.

    Failures are logged and swallowed: status reporting never fails a job.
    """
    if not is_configured():
        return
    try:
        await asyncio.to_thread(_update_job_status_sync, job_id, status, fields)
    except Exception:
        logger.exception("supabase.job_status.failed", job_id=job_id, status=status)
