"""Timeline planning node — narration length × image count → Timeline."""

from __future__ import annotations

import structlog

from slideshow_render.config import settings
from slideshow_render.errors import RenderError
from slideshow_render.graph.state import RenderJobState
from slideshow_render.models.media import AssetBundle
from slideshow_render.render.timeline import end_card_fits
from slideshow_render.services import RenderServices

logger = structlog.get_logger()


def make_plan_timeline(services: RenderServices):
    async def plan_timeline(state: RenderJobState) -> dict:
        job_id = state["job_id"]
        assets = AssetBundle.model_validate(state["assets"])
        narration = assets.narration.duration or 0.0

        use_end_card = assets.usable(assets.end_card) is not None
        if use_end_card and not end_card_fits(
            narration, settings.end_card_seconds, services.planner.min_scene_seconds
        ):
            logger.warning(
                "plan_timeline.end_card_dropped",
                job_id=job_id,
                narration_sec=narration,
                end_card_sec=settings.end_card_seconds,
            )
            use_end_card = False

        try:
            timeline = services.planner.plan(
                narration,
                len(assets.images),
                has_end_card=use_end_card,
                end_card_duration=settings.end_card_seconds,
            )
        except RenderError as exc:
            logger.warning("plan_timeline.failed", job_id=job_id, error=exc.message)
            return {"error": exc.message, "error_kind": exc.kind.value}

        return {"timeline": timeline.model_dump(mode="json")}

    return plan_timeline
