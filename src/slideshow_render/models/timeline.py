"""Pydantic models for the planned timeline."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MotionPreset(str, Enum):
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    PAN_LEFT = "pan_left"
    PAN_RIGHT = "pan_right"
    PAN_UP = "pan_up"
    PAN_DOWN = "pan_down"
    STATIC = "static"


class TransitionStyle(str, Enum):
    CUT = "cut"
    CROSSFADE = "crossfade"


class SceneSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    duration: float  # rendered segment length
    offset: float  # start in the merged visual track
    visible_duration: float  # portion left after trimming to the story duration
    motion: MotionPreset
    fade_in: bool
    fade_out: bool


class Timeline(BaseModel):
    model_config = ConfigDict(frozen=True)

    scenes: list[SceneSpec]
    narration_duration: float
    story_duration: float  # narration minus the end card, when one is used
    per_scene_duration: float
    fade_duration: float
    transition: TransitionStyle
    end_card_duration: float = 0.0

    @property
    def has_end_card(self) -> bool:
        return self.end_card_duration > 0

    @property
    def crossfade_count(self) -> int:
        if self.transition is TransitionStyle.CROSSFADE:
            return max(len(self.scenes) - 1, 0)
        return 0

    @property
    def scene_track_duration(self) -> float:
        """Length of the merged scenes before trimming."""
        last = self.scenes[-1]
        return last.offset + last.duration

    @property
    def has_motion(self) -> bool:
        return any(s.motion is not MotionPreset.STATIC for s in self.scenes)
