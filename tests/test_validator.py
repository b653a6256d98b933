from __future__ import annotations

import pytest
from conftest import GARBAGE, MP3, MP4, PNG, FakeProber

from slideshow_render.assets.validator import sniff_container, validate_asset
from slideshow_render.models.media import MediaKind, MediaRef
from slideshow_render.tools.moviepy_tools import VideoProbe


def _ref(kind: MediaKind, path: str = "/work/file.bin") -> MediaRef:
    return MediaRef(kind=kind, source=f"https://cdn.example.com{path}", local_path=path)


@pytest.mark.parametrize(
    "blob, expected",
    [
        (PNG, "png"),
        (b"\xff\xd8\xff\xe0" + b"\x00" * 20, "jpeg"),
        (MP3, "mp3"),
        (b"\xff\xfb\x90\x64" + b"\x00" * 20, "mp3"),
        (b"\xff\xf1\x50\x80" + b"\x00" * 20, "aac"),
        (b"RIFF\x24\x00\x00\x00WAVEfmt " + b"\x00" * 8, "wav"),
        (b"OggS" + b"\x00" * 20, "ogg"),
        (b"fLaC" + b"\x00" * 20, "flac"),
        (b"\x00\x00\x00\x20ftypM4A " + b"\x00" * 8, "m4a"),
        (MP4, "mp4"),
        (b"\x00\x00\x00\x14ftypqt  " + b"\x00" * 8, "mov"),
        (b"\x1a\x45\xdf\xa3" + b"\x00" * 20, "webm"),
        (GARBAGE, None),
        (b"ID3", None),
    ],
)
def test_sniff_container(blob, expected):
    assert sniff_container(blob) == expected


def test_valid_image():
    asset = validate_asset(PNG, _ref(MediaKind.IMAGE), prober=FakeProber())

    assert asset.valid
    assert (asset.width, asset.height) == (1280, 720)


def test_undecodable_image_is_rejected():
    asset = validate_asset(PNG, _ref(MediaKind.IMAGE, "/work/broken.png"), prober=FakeProber(broken=("broken",)))

    assert not asset.valid
    assert "decode" in asset.reason


def test_zero_dimension_image_is_rejected():
    class FlatProber(FakeProber):
        def image_size(self, path):
            return 0, 720

    asset = validate_asset(PNG, _ref(MediaKind.IMAGE), prober=FlatProber())

    assert not asset.valid


def test_audio_requires_container_magic():
    asset = validate_asset(GARBAGE, _ref(MediaKind.AMBIENCE), prober=FakeProber())

    assert not asset.valid
    assert "container" in asset.reason


def test_audio_expected_format_must_match():
    ogg = b"OggS" + b"\x00" * 20

    assert not validate_asset(ogg, _ref(MediaKind.AMBIENCE), expected_format="mp3", prober=FakeProber()).valid
    assert validate_asset(MP3, _ref(MediaKind.AMBIENCE), expected_format="mp3", prober=FakeProber()).valid


@pytest.mark.parametrize("duration", [0.0, -1.0, float("nan"), float("inf")])
def test_audio_duration_must_be_finite_and_positive(duration):
    asset = validate_asset(MP3, _ref(MediaKind.NARRATION), prober=FakeProber(audio_duration=duration))

    assert not asset.valid


def test_valid_narration_carries_duration():
    asset = validate_asset(MP3, _ref(MediaKind.NARRATION), prober=FakeProber(audio_duration=42.5))

    assert asset.valid
    assert asset.duration == 42.5


def test_overlay_needs_a_video_stream():
    class AudioOnlyProber(FakeProber):
        def video_info(self, path):
            return VideoProbe(duration=4.0, width=0, height=0, has_video=False)

    assert not validate_asset(MP4, _ref(MediaKind.OVERLAY), prober=AudioOnlyProber()).valid
    assert validate_asset(MP4, _ref(MediaKind.OVERLAY), prober=FakeProber()).valid


def test_overlay_probe_failure_is_reported_not_raised():
    asset = validate_asset(MP4, _ref(MediaKind.OVERLAY, "/work/broken.mp4"), prober=FakeProber(broken=("broken",)))

    assert not asset.valid
    assert "probe failed" in asset.reason


def test_empty_blob_is_rejected():
    assert not validate_asset(b"", _ref(MediaKind.IMAGE), prober=FakeProber()).valid


def test_image_requires_image_magic():
    asset = validate_asset(GARBAGE, _ref(MediaKind.IMAGE), prober=FakeProber())

    assert not asset.valid
    assert "image container" in asset.reason
