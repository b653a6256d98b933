"""Timeline Planner: reconciles a fixed narration length with a variable image count."""

from __future__ import annotations

import math
from typing import Optional

import structlog

from slideshow_render.config import settings
from slideshow_render.errors import TimelineInfeasible
from slideshow_render.models.timeline import MotionPreset, SceneSpec, Timeline, TransitionStyle

logger = structlog.get_logger()

MOTION_CYCLE: tuple[MotionPreset, ...] = (
    MotionPreset.ZOOM_IN,
    MotionPreset.PAN_RIGHT,
    MotionPreset.ZOOM_OUT,
    MotionPreset.PAN_LEFT,
    MotionPreset.PAN_UP,
    MotionPreset.PAN_DOWN,
)


def motion_for(index: int) -> MotionPreset:
    return MOTION_CYCLE[index % len(MOTION_CYCLE)]


def end_card_fits(narration_duration: float, end_card_duration: float, min_scene: float) -> bool:
    """True when the narration leaves at least one minimum scene before the end card."""
    return narration_duration - end_card_duration >= min_scene


class TimelinePlanner:
    def __init__(
        self,
        min_scene_seconds: Optional[float] = None,
        fade_ratio: Optional[float] = None,
        min_fade: Optional[float] = None,
        max_fade: Optional[float] = None,
        transition: Optional[TransitionStyle] = None,
    ):
        self.min_scene_seconds = min_scene_seconds if min_scene_seconds is not None else settings.min_scene_seconds
        self.fade_ratio = fade_ratio if fade_ratio is not None else settings.fade_ratio
        self.min_fade = min_fade if min_fade is not None else settings.min_fade_seconds
        self.max_fade = max_fade if max_fade is not None else settings.max_fade_seconds
        self.transition = transition or TransitionStyle(settings.transition_style)

    def fade_for(self, per_scene: float) -> float:
        fade = min(max(self.fade_ratio * per_scene, self.min_fade), self.max_fade)
        # a fade never spans more than half a scene
        return min(fade, per_scene / 2)

    def plan(
        self,
        narration_duration: float,
        image_count: int,
        has_end_card: bool = False,
        end_card_duration: float = 0.0,
        *,
        transition: Optional[TransitionStyle] = None,
        motion: bool = True,
    ) -> Timeline:
        """Compute scene durations, offsets, fades and motion presets.

        Raises:
            TimelineInfeasible: When the story duration is not positive or there
                are no images to place.
        """
        if image_count < 1:
            raise TimelineInfeasible("at least one image is required")
        if not math.isfinite(narration_duration) or narration_duration <= 0:
            raise TimelineInfeasible(f"narration duration must be positive, got {narration_duration!r}")

        end_card = end_card_duration if has_end_card else 0.0
        story = narration_duration - end_card
        if story <= 0:
            raise TimelineInfeasible(
                f"story duration {story:.3f}s is not positive (narration {narration_duration:.3f}s, "
                f"end card {end_card:.3f}s)"
            )

        per_scene = max(story / image_count, self.min_scene_seconds)
        fade = self.fade_for(per_scene)
        style = transition or self.transition
        if image_count == 1:
            style = TransitionStyle.CUT

        durations = [per_scene] * image_count
        if style is TransitionStyle.CROSSFADE:
            # every clip carries an equal share of the (N-1) overlaps
            clip = per_scene + fade * (image_count - 1) / image_count
            durations = [clip] * image_count
            step = clip - fade
        else:
            step = per_scene
        offsets = [i * step for i in range(image_count)]

        scenes: list[SceneSpec] = []
        last = image_count - 1
        for i in range(image_count):
            start = min(offsets[i], story)
            end = story if i == last else min(offsets[i + 1], story)
            if style is TransitionStyle.CROSSFADE:
                fade_in, fade_out = i == 0, i == last
            else:
                middle = 0 < i < last
                fade_in, fade_out = i == 0 or middle, i == last or middle
            scenes.append(
                SceneSpec(
                    index=i,
                    duration=durations[i],
                    offset=offsets[i],
                    visible_duration=max(end - start, 0.0),
                    motion=motion_for(i) if motion else MotionPreset.STATIC,
                    fade_in=fade_in,
                    fade_out=fade_out,
                )
            )

        timeline = Timeline(
            scenes=scenes,
            narration_duration=narration_duration,
            story_duration=story,
            per_scene_duration=per_scene,
            fade_duration=fade,
            transition=style,
            end_card_duration=end_card,
        )
        logger.info(
            "timeline.planned",
            scenes=image_count,
            per_scene=round(per_scene, 3),
            story=round(story, 3),
            fade=round(fade, 3),
            transition=style.value,
            overrun=round(max(timeline.scene_track_duration - story, 0.0), 3),
        )
        return timeline
