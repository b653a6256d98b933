"""Engine serializers: render plan → ffmpeg argument vector.

Media paths only ever appear as standalone ``-i`` arguments; the filter graph
string is built from node labels, stream specifiers and quoted option values.
"""

from __future__ import annotations

import math

from slideshow_render.config import settings
from slideshow_render.render.graph import Chain, Filter, RenderPlan

# Characters that must be quoted inside a filter option value
_SPECIAL = set(":,;[]'\\ =")


def format_number(value: float) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise ValueError(f"non-finite filter value {value!r}")
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def escape_value(value: object) -> str:
    text = format_number(value) if isinstance(value, (int, float)) else str(value)
    if any(ch in _SPECIAL for ch in text):
        return "'" + text.replace("'", "'\\''") + "'"
    return text


def _is_stream_spec(ref: str) -> bool:
    return ":" in ref


class FfmpegSerializer:
    """Serializer for current engine releases (5.x and later)."""

    # filter name → option names this engine version does not accept
    unsupported_options: dict[str, frozenset[str]] = {}

    def __init__(
        self,
        binary: str | None = None,
        preset: str | None = None,
        crf: int | None = None,
        audio_bitrate: str | None = None,
    ):
        self.binary = binary or settings.ffmpeg_binary
        self.preset = preset or settings.video_preset
        self.crf = crf if crf is not None else settings.video_crf
        self.audio_bitrate = audio_bitrate or settings.audio_bitrate

    def filter_str(self, flt: Filter) -> str:
        dropped = self.unsupported_options.get(flt.name, frozenset())
        parts = [escape_value(v) for v in flt.positional]
        parts += [f"{k}={escape_value(v)}" for k, v in flt.options if k not in dropped]
        return f"{flt.name}={':'.join(parts)}" if parts else flt.name

    def chain_str(self, chain: Chain) -> str:
        pads = "".join(f"[{ref}]" for ref in chain.inputs)
        body = ",".join(self.filter_str(f) for f in chain.filters)
        return f"{pads}{body}[{chain.output}]"

    def filtergraph(self, plan: RenderPlan) -> str:
        plan.validate()
        return ";".join(self.chain_str(chain) for node in plan.nodes for chain in node.chains())

    def command(self, plan: RenderPlan, output_path: str) -> list[str]:
        args = [self.binary, "-hide_banner", "-nostdin", "-y", "-loglevel", "error"]
        for source in plan.inputs:
            args += [*source.options, "-i", source.path]
        args += ["-filter_complex", self.filtergraph(plan)]
        for terminal in (plan.video_out, plan.audio_out):
            args += ["-map", terminal if _is_stream_spec(terminal) else f"[{terminal}]"]
        args += [
            "-c:v", "libx264",
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", "yuv420p",
            "-r", str(plan.output.fps),
            "-c:a", "aac",
            "-b:a", self.audio_bitrate,
            "-movflags", "+faststart",
            "-t", format_number(plan.output.duration),
            output_path,
        ]
        return args


class LegacyFfmpegSerializer(FfmpegSerializer):
    """Serializer for 4.x engines, which predate ``amix normalize``."""

    unsupported_options = {"amix": frozenset({"normalize"})}


def serializer_for(version: str | None = None) -> FfmpegSerializer:
    version = version or settings.engine_version
    try:
        major = int(version.split(".")[0])
    except ValueError:
        major = 0
    if 0 < major < 5:
        return LegacyFfmpegSerializer()
    return FfmpegSerializer()
