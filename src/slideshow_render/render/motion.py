"""Ken Burns motion presets expressed as zoompan parameters.

Each preset is a monotonic function of the scene's progress ``P`` (0 → 1 over
the scene's frames): zooms move between 1.0 and the configured zoom factor,
pans hold a fixed zoom and sweep the crop window from one edge to the other.
"""

from __future__ import annotations

from slideshow_render.models.timeline import MotionPreset
from slideshow_render.render.graph import Filter

_CENTER_X = "iw/2-(iw/zoom/2)"
_CENTER_Y = "ih/2-(ih/zoom/2)"


def _progress(frames: int) -> str:
    return f"min(on/{max(frames - 1, 1)},1)"


def _num(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".")


def zoompan_expressions(preset: MotionPreset, frames: int, motion_zoom: float, pan_zoom: float) -> tuple[str, str, str]:
    """Return ``(z, x, y)`` expressions for *preset*."""
    p = _progress(frames)
    span = _num(motion_zoom - 1.0)
    if preset is MotionPreset.ZOOM_IN:
        return f"1+{span}*{p}", _CENTER_X, _CENTER_Y
    if preset is MotionPreset.ZOOM_OUT:
        return f"{_num(motion_zoom)}-{span}*{p}", _CENTER_X, _CENTER_Y

    z = _num(pan_zoom)
    if preset is MotionPreset.PAN_LEFT:
        return z, f"(iw-iw/zoom)*(1-{p})", _CENTER_Y
    if preset is MotionPreset.PAN_RIGHT:
        return z, f"(iw-iw/zoom)*{p}", _CENTER_Y
    if preset is MotionPreset.PAN_UP:
        return z, _CENTER_X, f"(ih-ih/zoom)*(1-{p})"
    if preset is MotionPreset.PAN_DOWN:
        return z, _CENTER_X, f"(ih-ih/zoom)*{p}"
    raise ValueError(f"{preset.value} has no motion")


def zoompan_filter(
    preset: MotionPreset,
    frames: int,
    width: int,
    height: int,
    fps: int,
    motion_zoom: float,
    pan_zoom: float,
) -> Filter:
    z, x, y = zoompan_expressions(preset, frames, motion_zoom, pan_zoom)
    return Filter.of("zoompan", z=z, x=x, y=y, d=frames, s=f"{width}x{height}", fps=fps)
