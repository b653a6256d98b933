"""Publish node — moves the artifact out of the job workspace and uploads it."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import structlog

from slideshow_render.config import get_output_dir
from slideshow_render.graph.state import RenderJobState
from slideshow_render.models.outcome import RenderOutcome
from slideshow_render.models.timeline import Timeline
from slideshow_render.services import RenderServices
from slideshow_render.tools.supabase_storage import upload_artifact

logger = structlog.get_logger()


def make_publish_result(services: RenderServices):
    async def publish_result(state: RenderJobState) -> dict:
        """Copy the artifact to the output directory and hand it to storage.

        Upload failures are logged; the local artifact still completes the job.
        """
        job_id = state["job_id"]
        outcome = RenderOutcome.model_validate(state["outcome"])
        timeline = Timeline.model_validate(state["timeline"])

        output_dir = get_output_dir() / job_id
        output_dir.mkdir(parents=True, exist_ok=True)
        final_path = output_dir / f"{job_id}.mp4"
        shutil.copyfile(outcome.artifact_path, final_path)

        try:
            duration_sec = (await asyncio.to_thread(services.prober.video_info, str(final_path))).duration
        except Exception:
            logger.warning("publish_result.probe_failed", job_id=job_id, exc_info=True)
            duration_sec = timeline.narration_duration

        artifact_url = ""
        try:
            artifact_url = await upload_artifact(job_id, str(final_path))
        except Exception:
            logger.exception("publish_result.upload_failed", job_id=job_id)

        logger.info(
            "publish_result.done",
            job_id=job_id,
            path=str(final_path),
            url=artifact_url,
            rung=outcome.rung,
        )
        return {
            "result": {
                "artifact_path": str(final_path),
                "artifact_url": artifact_url,
                "duration_sec": duration_sec,
                "features": outcome.features.model_dump(),
            }
        }

    return publish_result
