"""Asset Validator: container sniffing and decodability probes for fetched media.

Validation never raises: an unusable blob produces a ``ValidatedAsset`` with
``valid=False`` and a short reason, and the caller decides whether the asset
was required or optional.
"""

from __future__ import annotations

import math
from typing import Optional, Protocol

import structlog

from slideshow_render.models.media import MediaKind, MediaRef, ValidatedAsset
from slideshow_render.tools.moviepy_tools import MoviepyProber, VideoProbe

logger = structlog.get_logger()

IMAGE_CONTAINERS = frozenset({"png", "jpeg", "gif", "webp"})
AUDIO_CONTAINERS = frozenset({"mp3", "aac", "wav", "ogg", "flac", "m4a", "mp4"})
VIDEO_CONTAINERS = frozenset({"mp4", "mov", "webm"})

# Requested format → containers that satisfy it
_FORMAT_ALIASES: dict[str, frozenset[str]] = {
    "mp3": frozenset({"mp3"}),
    "aac": frozenset({"aac", "m4a", "mp4"}),
    "m4a": frozenset({"m4a", "mp4"}),
    "wav": frozenset({"wav"}),
    "ogg": frozenset({"ogg"}),
    "flac": frozenset({"flac"}),
    "mp4": frozenset({"mp4", "m4a", "mov"}),
    "mov": frozenset({"mov", "mp4"}),
    "webm": frozenset({"webm"}),
}


class MediaProber(Protocol):
    def image_size(self, path: str) -> tuple[int, int]: ...

    def audio_duration(self, path: str) -> float: ...

    def video_info(self, path: str) -> VideoProbe: ...


def sniff_container(blob: bytes) -> Optional[str]:
    """Identify a media container from its leading magic bytes."""
    if len(blob) < 12:
        return None
    head = blob[:12]
    if head.startswith(b"\x89PNG"):
        return "png"
    if head.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if head.startswith(b"GIF8"):
        return "gif"
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "webp"
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "wav"
    if head.startswith(b"ID3"):
        return "mp3"
    if head[0] == 0xFF and (head[1] & 0xE0) == 0xE0:
        # MPEG frame sync; layer bits 00 mean an ADTS AAC stream
        return "aac" if (head[1] & 0x06) == 0 else "mp3"
    if head.startswith(b"OggS"):
        return "ogg"
    if head.startswith(b"fLaC"):
        return "flac"
    if head[4:8] == b"ftyp":
        brand = head[8:12]
        if brand.startswith(b"M4A"):
            return "m4a"
        if brand == b"qt  ":
            return "mov"
        return "mp4"
    if head.startswith(b"\x1a\x45\xdf\xa3"):
        return "webm"
    return None


def _container_matches(container: Optional[str], allowed: frozenset[str], expected_format: Optional[str]) -> bool:
    if container is None or container not in allowed:
        return False
    if expected_format:
        return container in _FORMAT_ALIASES.get(expected_format.lower(), frozenset({expected_format.lower()}))
    return True


def _positive_finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def validate_asset(
    blob: bytes,
    ref: MediaRef,
    *,
    expected_format: Optional[str] = None,
    prober: Optional[MediaProber] = None,
) -> ValidatedAsset:
    """Decide whether the materialized *blob* behind *ref* is usable.

    Images must carry image magic bytes and decode with non-zero dimensions.
    Audio must carry the expected container magic and probe to a finite
    positive duration. Overlay video must probe the same way and expose a
    video stream.
    """
    prober = prober or MoviepyProber()
    path = ref.local_path or ""

    def invalid(reason: str) -> ValidatedAsset:
        logger.warning("validator.rejected", kind=ref.kind.value, source=ref.source, reason=reason)
        return ValidatedAsset(ref=ref, valid=False, reason=reason)

    if not blob:
        return invalid("empty blob")
    if not path:
        return invalid("asset not materialized")

    container = sniff_container(blob)

    if ref.kind in (MediaKind.IMAGE, MediaKind.END_CARD):
        if container not in IMAGE_CONTAINERS:
            return invalid(f"unexpected image container {container!r}")
        try:
            width, height = prober.image_size(path)
        except Exception as exc:
            return invalid(f"image decode failed: {exc}")
        if width <= 0 or height <= 0:
            return invalid(f"zero-dimension image {width}x{height}")
        return ValidatedAsset(ref=ref, valid=True, width=width, height=height)

    if ref.kind in (MediaKind.NARRATION, MediaKind.AMBIENCE):
        if not _container_matches(container, AUDIO_CONTAINERS, expected_format):
            return invalid(f"unexpected audio container {container!r}")
        try:
            duration = prober.audio_duration(path)
        except Exception as exc:
            return invalid(f"audio probe failed: {exc}")
        if not _positive_finite(duration):
            return invalid(f"unusable audio duration {duration!r}")
        return ValidatedAsset(ref=ref, valid=True, duration=duration)

    if ref.kind is MediaKind.OVERLAY:
        if not _container_matches(container, VIDEO_CONTAINERS, expected_format):
            return invalid(f"unexpected video container {container!r}")
        try:
            info = prober.video_info(path)
        except Exception as exc:
            return invalid(f"video probe failed: {exc}")
        if not info.has_video:
            return invalid("no video stream")
        if not _positive_finite(info.duration):
            return invalid(f"unusable video duration {info.duration!r}")
        return ValidatedAsset(
            ref=ref, valid=True, duration=info.duration, width=info.width, height=info.height
        )

    return invalid(f"unsupported kind {ref.kind.value}")
