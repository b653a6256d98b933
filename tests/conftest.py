from __future__ import annotations

from pathlib import Path

import pytest

from slideshow_render.assets.resolver import ThemeAssetResolver
from slideshow_render.assets.themes import ThemeRule, ThemeTable
from slideshow_render.config import settings
from slideshow_render.errors import AssetFetchFailed
from slideshow_render.models.media import AssetBundle, MediaKind, MediaRef, ValidatedAsset
from slideshow_render.models.timeline import TransitionStyle
from slideshow_render.render.executor import ExecutionAdapter
from slideshow_render.render.serializer import FfmpegSerializer
from slideshow_render.render.timeline import TimelinePlanner
from slideshow_render.services import RenderServices
from slideshow_render.tools.ffmpeg import EngineRun
from slideshow_render.tools.moviepy_tools import VideoProbe

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
MP3 = b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\x00" * 64
MP4 = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64
GARBAGE = b"<html>not media at all</html>"


class FakeProber:
    """Probe stand-in: decodes anything unless the path contains a broken marker."""

    def __init__(self, audio_duration: float = 18.0, video_duration: float = 4.0, broken: tuple[str, ...] = ()):
        self.audio = audio_duration
        self.video = video_duration
        self.broken = broken

    def _check(self, path: str) -> None:
        if any(marker in path for marker in self.broken):
            raise OSError(f"cannot decode {path}")

    def image_size(self, path: str) -> tuple[int, int]:
        self._check(path)
        return 1280, 720

    def audio_duration(self, path: str) -> float:
        self._check(path)
        return self.audio

    def video_info(self, path: str) -> VideoProbe:
        self._check(path)
        return VideoProbe(duration=self.video, width=1280, height=720, has_video=True)


class FakeFetcher:
    """Serves blobs from a dict; unknown locators fail like an HTTP 404."""

    def __init__(self, blobs: dict[str, bytes] | None = None):
        self.blobs = dict(blobs or {})
        self.calls: list[str] = []

    async def fetch(self, locator: str, dest: Path) -> bytes:
        self.calls.append(locator)
        if locator not in self.blobs:
            raise AssetFetchFailed(f"HTTP 404 for {locator}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.blobs[locator])
        return self.blobs[locator]


class FakeRunner:
    """Engine stand-in replaying scripted results; success writes the output file."""

    def __init__(self, *results: tuple[int, str]):
        self.results = list(results) or [(0, "")]
        self.calls: list[list[str]] = []

    async def __call__(self, argv: list[str]) -> EngineRun:
        self.calls.append(argv)
        index = min(len(self.calls) - 1, len(self.results) - 1)
        returncode, stderr = self.results[index]
        if returncode == 0:
            Path(argv[-1]).write_bytes(b"\x00" * 4096)
        return EngineRun(returncode=returncode, stderr=stderr)


TEST_TABLE = ThemeTable(
    rules=[
        ThemeRule(
            name="horror",
            keywords=["scary", "haunted"],
            ambience=["ambience/horror_a.mp3", "ambience/horror_b.mp3"],
            overlay=["overlays/scratches.mp4"],
        ),
        ThemeRule(name="ocean", keywords=["sea", "beach"], ambience=["ambience/waves.mp3"], overlay=[]),
    ],
    default=ThemeRule(name="default", ambience=["ambience/room.mp3"], overlay=["overlays/dust.mp4"]),
)

ASSET_BASE = "https://assets.example.com/lib"


def asset(kind: MediaKind, path: str, valid: bool = True, duration: float | None = None) -> ValidatedAsset:
    return ValidatedAsset(
        ref=MediaRef(kind=kind, source=path, local_path=path), valid=valid, duration=duration
    )


def make_bundle(
    images: int = 3,
    narration: float = 18.0,
    ambience: bool = True,
    overlay: bool = True,
    end_card: bool = False,
    ambience_valid: bool = True,
) -> AssetBundle:
    return AssetBundle(
        images=[asset(MediaKind.IMAGE, f"/work/image_{i:03d}.png") for i in range(images)],
        narration=asset(MediaKind.NARRATION, "/work/narration.mp3", duration=narration),
        ambience=asset(MediaKind.AMBIENCE, "/work/ambience_0.mp3", valid=ambience_valid, duration=30.0)
        if ambience
        else None,
        overlay=asset(MediaKind.OVERLAY, "/work/overlay_0.mp4", duration=4.0) if overlay else None,
        end_card=asset(MediaKind.END_CARD, "/work/end_card.png") if end_card else None,
    )


@pytest.fixture
def planner() -> TimelinePlanner:
    return TimelinePlanner(
        min_scene_seconds=3.0, fade_ratio=0.35, min_fade=0.25, max_fade=1.0, transition=TransitionStyle.CUT
    )


@pytest.fixture
def output_dir(tmp_path, monkeypatch) -> Path:
    out = tmp_path / "output"
    monkeypatch.setattr(settings, "output_base_dir", str(out))
    monkeypatch.setattr(settings, "work_dir_root", str(tmp_path / "work"))
    monkeypatch.setattr(settings, "supabase_url", "")
    return out


def make_services(fetcher: FakeFetcher, runner: FakeRunner, prober: FakeProber, planner: TimelinePlanner) -> RenderServices:
    resolver = ThemeAssetResolver(
        fetcher,
        table=TEST_TABLE,
        base_url=ASSET_BASE,
        defaults={MediaKind.AMBIENCE: "ambience/fallback.mp3", MediaKind.OVERLAY: "overlays/fallback.mp4"},
        prober=prober,
    )
    return RenderServices(
        fetcher=fetcher,
        resolver=resolver,
        planner=planner,
        executor=ExecutionAdapter(serializer=FfmpegSerializer(binary="ffmpeg"), runner=runner, min_artifact_bytes=1024),
        prober=prober,
    )
