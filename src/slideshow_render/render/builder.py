"""Render Plan Builder: turns a Timeline and validated assets into a composition graph."""

from __future__ import annotations

from typing import Optional

import structlog

from slideshow_render.config import settings
from slideshow_render.models.media import AssetBundle
from slideshow_render.models.outcome import Feature, FeatureFlags
from slideshow_render.models.timeline import MotionPreset, SceneSpec, Timeline, TransitionStyle
from slideshow_render.render.graph import (
    AudioMixNode,
    Filter,
    InputSource,
    MergeNode,
    Node,
    OutputSpec,
    OverlayCompositeNode,
    RenderPlan,
    TransformNode,
)
from slideshow_render.render.motion import zoompan_filter

logger = structlog.get_logger()

# Pre-scale factor giving the pan/zoom room to move without upscaling artifacts
_MOTION_HEADROOM = 1.5


def _even(value: float) -> int:
    n = int(round(value))
    return n if n % 2 == 0 else n + 1


def available_features(timeline: Timeline, assets: AssetBundle) -> FeatureFlags:
    """Features the timeline and the validated assets can support at all."""
    return FeatureFlags(
        overlay=assets.usable(assets.overlay) is not None,
        ambience=assets.usable(assets.ambience) is not None,
        end_card=timeline.has_end_card and assets.usable(assets.end_card) is not None,
        crossfade=timeline.crossfade_count > 0,
        motion=timeline.has_motion,
    )


class RenderPlanBuilder:
    def __init__(
        self,
        width: int,
        height: int,
        fps: Optional[int] = None,
        overlay_opacity: Optional[float] = None,
        ambience_volume: Optional[float] = None,
        motion_zoom: Optional[float] = None,
        pan_zoom: Optional[float] = None,
    ):
        self.width = width
        self.height = height
        self.fps = fps or settings.video_fps
        self.overlay_opacity = overlay_opacity if overlay_opacity is not None else settings.overlay_opacity
        self.ambience_volume = ambience_volume if ambience_volume is not None else settings.ambience_volume
        self.motion_zoom = motion_zoom if motion_zoom is not None else settings.motion_zoom
        self.pan_zoom = pan_zoom if pan_zoom is not None else settings.pan_zoom

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def _cover(self, width: int, height: int) -> list[Filter]:
        return [
            Filter.of("scale", w=width, h=height, force_original_aspect_ratio="increase"),
            Filter.of("crop", w=width, h=height),
        ]

    def _fades(self, scene: SceneSpec, fade: float, is_last: bool) -> list[Filter]:
        steps: list[Filter] = []
        if fade <= 0 or scene.duration <= fade:
            return steps
        if scene.fade_in:
            steps.append(Filter.of("fade", t="in", st=0, d=fade))
        if scene.fade_out:
            end = scene.duration
            if is_last and scene.visible_duration > fade:
                end = min(end, scene.visible_duration)
            steps.append(Filter.of("fade", t="out", st=end - fade, d=fade))
        return steps

    def scene_transform(
        self, scene: SceneSpec, source: InputSource, fade: float, motion: bool, is_last: bool
    ) -> TransformNode:
        steps: list[Filter] = []
        if motion and scene.motion is not MotionPreset.STATIC:
            frames = max(int(round(scene.duration * self.fps)), 1)
            steps += self._cover(_even(self.width * _MOTION_HEADROOM), _even(self.height * _MOTION_HEADROOM))
            steps.append(
                zoompan_filter(
                    scene.motion, frames, self.width, self.height, self.fps, self.motion_zoom, self.pan_zoom
                )
            )
        else:
            steps += self._cover(self.width, self.height)
            steps.append(Filter.of("fps", self.fps))
        steps += [
            Filter.of("setsar", 1),
            Filter.of("trim", duration=scene.duration),
            Filter.of("format", "yuv420p"),
            Filter.of("setpts", "PTS-STARTPTS"),
        ]
        steps += self._fades(scene, fade, is_last)
        return TransformNode(
            label=f"v{scene.index}", source=source.stream("v"), steps=tuple(steps), scene_index=scene.index
        )

    def end_card_transform(self, source: InputSource, duration: float, fade: float) -> TransformNode:
        steps = self._cover(self.width, self.height) + [
            Filter.of("fps", self.fps),
            Filter.of("setsar", 1),
            Filter.of("format", "yuv420p"),
            Filter.of("trim", duration=duration),
            Filter.of("setpts", "PTS-STARTPTS"),
        ]
        if 0 < fade < duration:
            steps.append(Filter.of("fade", t="in", st=0, d=fade))
        return TransformNode(label="vendcard", source=source.stream("v"), steps=tuple(steps))

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    def build(
        self,
        timeline: Timeline,
        assets: AssetBundle,
        features: FeatureFlags,
        rung: str = "full",
    ) -> RenderPlan:
        """Assemble a dependency-ordered plan for *timeline*.

        Requested *features* are intersected with what the timeline and the
        validated assets support; an unavailable or disabled feature leaves
        its node out of the plan entirely.
        """
        if len(assets.images) != len(timeline.scenes):
            raise ValueError(f"{len(assets.images)} images for {len(timeline.scenes)} scenes")
        flags = features.intersect(available_features(timeline, assets))
        motion = flags.motion
        fps = self.fps

        inputs: list[InputSource] = []

        def add_input(role: str, path: str, options: tuple[str, ...] = (), feature: Optional[Feature] = None) -> InputSource:
            source = InputSource(index=len(inputs), role=role, path=path, options=options, feature=feature)
            inputs.append(source)
            return source

        nodes: list[Node] = []
        scene_labels: list[str] = []
        last = len(timeline.scenes) - 1
        for scene, image in zip(timeline.scenes, assets.images):
            if motion and scene.motion is not MotionPreset.STATIC:
                options: tuple[str, ...] = ()
            else:
                options = ("-loop", "1", "-framerate", str(fps), "-t", _seconds(scene.duration))
            source = add_input("image", image.path, options)
            node = self.scene_transform(scene, source, timeline.fade_duration, motion, scene.index == last)
            nodes.append(node)
            scene_labels.append(node.label)

        narration = add_input("narration", assets.narration.path)

        end_card_label = None
        if flags.end_card:
            card = add_input(
                "end_card",
                assets.end_card.path,
                ("-loop", "1", "-framerate", str(fps), "-t", _seconds(timeline.end_card_duration)),
                Feature.END_CARD,
            )
            card_node = self.end_card_transform(card, timeline.end_card_duration, timeline.fade_duration)
            nodes.append(card_node)
            end_card_label = card_node.label

        crossfade = flags.crossfade and timeline.transition is TransitionStyle.CROSSFADE
        merge = MergeNode(
            label="base",
            scenes=tuple(scene_labels),
            crossfade=crossfade,
            offsets=tuple(s.offset for s in timeline.scenes),
            fade=timeline.fade_duration,
            story_duration=min(timeline.story_duration, _concat_length(timeline, crossfade)),
            output_duration=timeline.narration_duration,
            end_card=end_card_label,
        )
        nodes.append(merge)
        video_out = merge.label

        if flags.overlay:
            overlay = add_input("overlay", assets.overlay.path, ("-stream_loop", "-1"), Feature.OVERLAY)
            composite = OverlayCompositeNode(
                label="vout",
                base=merge.label,
                overlay=overlay.stream("v"),
                opacity=self.overlay_opacity,
                width=self.width,
                height=self.height,
                fps=fps,
                duration=timeline.narration_duration,
            )
            nodes.append(composite)
            video_out = composite.label

        audio_out = narration.stream("a")
        if flags.ambience:
            ambience = add_input("ambience", assets.ambience.path, ("-stream_loop", "-1"), Feature.AMBIENCE)
            mix = AudioMixNode(
                label="aout",
                narration=narration.stream("a"),
                ambience=ambience.stream("a"),
                volume=self.ambience_volume,
                duration=timeline.narration_duration,
            )
            nodes.append(mix)
            audio_out = mix.label

        plan = RenderPlan(
            rung=rung,
            inputs=tuple(inputs),
            nodes=tuple(nodes),
            features=flags,
            video_out=video_out,
            audio_out=audio_out,
            output=OutputSpec(width=self.width, height=self.height, fps=fps, duration=timeline.narration_duration),
        )
        plan.validate()
        logger.info(
            "plan.built",
            rung=rung,
            nodes=len(plan.nodes),
            inputs=len(plan.inputs),
            features=sorted(f.value for f in flags.enabled()),
        )
        return plan


def _seconds(value: float) -> str:
    return f"{value:.3f}"


def _concat_length(timeline: Timeline, crossfade: bool) -> float:
    """Length of the merged scene track for the chosen merge style."""
    if crossfade:
        return timeline.scene_track_duration
    return sum(s.duration for s in timeline.scenes)
