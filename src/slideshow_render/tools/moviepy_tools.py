"""MoviePy probes: image size, audio duration and video stream checks."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from moviepy import AudioFileClip, ImageClip, VideoFileClip

logger = structlog.get_logger()


@dataclass(frozen=True)
class VideoProbe:
    duration: float
    width: int
    height: int
    has_video: bool


class MoviepyProber:
    """Decodability probes backed by MoviePy readers.

    Every method raises whatever the underlying reader raises when the file
    cannot be decoded; the Asset Validator turns that into an invalid verdict.
    """

    def image_size(self, path: str) -> tuple[int, int]:
        clip = ImageClip(path)
        try:
            width, height = clip.size
        finally:
            clip.close()
        logger.debug("probe.image", path=path, width=width, height=height)
        return int(width), int(height)

    def audio_duration(self, path: str) -> float:
        clip = AudioFileClip(path)
        try:
            duration = clip.duration
        finally:
            clip.close()
        logger.debug("probe.audio", path=path, duration=duration)
        return float(duration) if duration is not None else float("nan")

    def video_info(self, path: str) -> VideoProbe:
        clip = VideoFileClip(path, audio=False)
        try:
            width, height = clip.size
            duration = clip.duration
        finally:
            clip.close()
        logger.debug("probe.video", path=path, width=width, height=height, duration=duration)
        return VideoProbe(
            duration=float(duration) if duration is not None else float("nan"),
            width=int(width),
            height=int(height),
            has_video=width > 0 and height > 0,
        )
