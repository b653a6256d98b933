"""Degradation Controller: retries a render down a ladder of simpler plans.

Ladder: full → no overlay → no ambience (and no overlay) → minimal (scenes
only, simple cut, no motion). Each rung is rebuilt from the timeline, so the
feature set of every attempt is a subset of the one before it.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from slideshow_render.errors import ErrorKind
from slideshow_render.models.media import AssetBundle
from slideshow_render.models.outcome import Feature, FeatureFlags, OutcomeStatus, RenderOutcome
from slideshow_render.models.timeline import Timeline, TransitionStyle
from slideshow_render.render.builder import RenderPlanBuilder, available_features
from slideshow_render.render.executor import ExecutionAdapter
from slideshow_render.render.timeline import TimelinePlanner

logger = structlog.get_logger()

_ALL = FeatureFlags(overlay=True, ambience=True, end_card=True, crossfade=True, motion=True)

LADDER: tuple[tuple[str, FeatureFlags], ...] = (
    ("full", _ALL),
    ("no_overlay", _ALL.without(Feature.OVERLAY)),
    ("no_ambience", _ALL.without(Feature.OVERLAY, Feature.AMBIENCE)),
    ("minimal", FeatureFlags()),
)


def attempt_record(outcome: RenderOutcome) -> dict:
    """JSON-friendly summary of one attempt for state and diagnostics."""
    return {
        "rung": outcome.rung,
        "status": outcome.status.value,
        "features": sorted(f.value for f in outcome.features.enabled()),
        "error_kind": outcome.error_kind,
        "dropped_feature": outcome.dropped_feature.value if outcome.dropped_feature else None,
        "diagnostic": outcome.diagnostic[-500:],
    }


class DegradationController:
    def __init__(self, builder: RenderPlanBuilder, executor: ExecutionAdapter, planner: TimelinePlanner):
        self.builder = builder
        self.executor = executor
        self.planner = planner

    def _timeline_for(self, timeline: Timeline, flags: FeatureFlags) -> Timeline:
        """Re-plan when a rung drops a feature the timeline was planned around."""
        drops_end_card = timeline.has_end_card and not flags.end_card
        drops_style = (timeline.crossfade_count > 0 and not flags.crossfade) or (
            timeline.has_motion and not flags.motion
        )
        if not (drops_end_card or drops_style):
            return timeline
        return self.planner.plan(
            timeline.narration_duration,
            len(timeline.scenes),
            has_end_card=flags.end_card,
            end_card_duration=timeline.end_card_duration,
            transition=TransitionStyle.CROSSFADE if flags.crossfade else TransitionStyle.CUT,
            motion=flags.motion,
        )

    async def run_ladder(
        self,
        timeline: Timeline,
        assets: AssetBundle,
        *,
        work_dir: Path,
        job_id: str = "",
    ) -> tuple[RenderOutcome, list[RenderOutcome]]:
        """Walk the ladder until an attempt succeeds; return the final outcome and every attempt."""
        available = available_features(timeline, assets)
        attempts: list[RenderOutcome] = []
        tried: set[FeatureFlags] = set()
        banned: set[Feature] = set()

        for rung, requested in LADDER:
            flags = requested.intersect(available).without(*banned)
            if flags in tried:
                logger.info("degradation.skip_rung", job_id=job_id, rung=rung, reason="same features as earlier attempt")
                continue
            tried.add(flags)

            plan = self.builder.build(self._timeline_for(timeline, flags), assets, flags, rung=rung)
            output = work_dir / f"attempt_{len(attempts) + 1}_{rung}.mp4"
            outcome = await self.executor.execute(plan, str(output))
            attempts.append(outcome)

            if outcome.ok:
                logger.info(
                    "degradation.succeeded",
                    job_id=job_id,
                    rung=rung,
                    attempts=len(attempts),
                    features=sorted(f.value for f in outcome.features.enabled()),
                )
                return outcome, attempts

            if outcome.dropped_feature is not None:
                banned.add(outcome.dropped_feature)
            logger.warning(
                "degradation.advance",
                job_id=job_id,
                rung=rung,
                status=outcome.status.value,
                dropped_feature=outcome.dropped_feature.value if outcome.dropped_feature else None,
                cause=outcome.diagnostic[-300:],
            )

        last = attempts[-1]
        if last.status is not OutcomeStatus.FATAL:
            last = last.model_copy(update={"status": OutcomeStatus.FATAL, "error_kind": ErrorKind.ENGINE_FATAL.value})
            attempts[-1] = last
        logger.error("degradation.exhausted", job_id=job_id, attempts=len(attempts))
        return last, attempts

    async def render_with_degradation(
        self, timeline: Timeline, assets: AssetBundle, *, work_dir: Path, job_id: str = ""
    ) -> RenderOutcome:
        outcome, _ = await self.run_ladder(timeline, assets, work_dir=work_dir, job_id=job_id)
        return outcome
