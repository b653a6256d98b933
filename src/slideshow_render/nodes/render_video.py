"""Render node — executes the plan down the degradation ladder."""

from __future__ import annotations

from pathlib import Path

import structlog

from slideshow_render.errors import ErrorKind
from slideshow_render.graph.state import RenderJobState
from slideshow_render.models.media import AssetBundle
from slideshow_render.models.timeline import Timeline
from slideshow_render.render.degradation import attempt_record
from slideshow_render.services import RenderServices

logger = structlog.get_logger()


def make_render_video(services: RenderServices):
    async def render_video(state: RenderJobState) -> dict:
        job_id = state["job_id"]
        assets = AssetBundle.model_validate(state["assets"])
        timeline = Timeline.model_validate(state["timeline"])
        controller = services.controller_for(state["request"]["aspect_ratio"])

        logger.info("render_video.start", job_id=job_id, scenes=len(timeline.scenes))
        outcome, attempts = await controller.run_ladder(
            timeline, assets, work_dir=Path(state["work_dir"]), job_id=job_id
        )
        update: dict = {
            "outcome": outcome.model_dump(mode="json"),
            "attempts": [attempt_record(a) for a in attempts],
        }
        if not outcome.ok:
            update["error"] = outcome.diagnostic or "render failed on every degradation rung"
            update["error_kind"] = ErrorKind.ENGINE_FATAL.value
        return update

    return render_video
