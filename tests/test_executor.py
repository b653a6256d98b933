from __future__ import annotations

import asyncio

import pytest
from conftest import FakeRunner, make_bundle

from slideshow_render.errors import ErrorKind
from slideshow_render.models.outcome import Feature, FeatureFlags, OutcomeStatus
from slideshow_render.render.builder import RenderPlanBuilder
from slideshow_render.render.executor import ExecutionAdapter, implicated_inputs
from slideshow_render.render.serializer import FfmpegSerializer
from slideshow_render.tools.ffmpeg import EngineRun

EVERYTHING = FeatureFlags(overlay=True, ambience=True, end_card=True, crossfade=True, motion=True)


@pytest.fixture
def plan(planner):
    builder = RenderPlanBuilder(width=1280, height=720, fps=30)
    return builder.build(planner.plan(18.0, 3), make_bundle(), EVERYTHING)


def _adapter(runner) -> ExecutionAdapter:
    return ExecutionAdapter(serializer=FfmpegSerializer(binary="ffmpeg"), runner=runner, min_artifact_bytes=1024)


def test_clean_exit_with_artifact_is_success(plan, tmp_path):
    runner = FakeRunner()
    output = tmp_path / "attempt.mp4"

    outcome = asyncio.run(_adapter(runner).execute(plan, str(output)))

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.artifact_path == str(output)
    assert runner.calls[0][-1] == str(output)


def test_clean_exit_without_artifact_is_fatal(plan, tmp_path):
    async def silent(argv):
        return EngineRun(returncode=0, stderr="")

    outcome = asyncio.run(_adapter(silent).execute(plan, str(tmp_path / "attempt.mp4")))

    assert outcome.status is OutcomeStatus.FATAL
    assert outcome.error_kind == ErrorKind.ENGINE_FATAL.value
    assert "too small" in outcome.diagnostic


def test_overlay_input_failure_is_recoverable(plan, tmp_path):
    runner = FakeRunner((1, "Error opening input file /work/overlay_0.mp4.\nError opening input files: Invalid data"))

    outcome = asyncio.run(_adapter(runner).execute(plan, str(tmp_path / "attempt.mp4")))

    assert outcome.status is OutcomeStatus.RECOVERABLE
    assert outcome.dropped_feature is Feature.OVERLAY
    assert outcome.error_kind == ErrorKind.ENGINE_RECOVERABLE.value


def test_ambience_decode_error_by_stream_index(plan, tmp_path):
    ambience_index = plan.input_for("ambience").index
    runner = FakeRunner((1, f"[aist#{ambience_index}:0/mp3 @ 0x55] Error while decoding stream: Invalid data"))

    outcome = asyncio.run(_adapter(runner).execute(plan, str(tmp_path / "attempt.mp4")))

    assert outcome.status is OutcomeStatus.RECOVERABLE
    assert outcome.dropped_feature is Feature.AMBIENCE


def test_required_input_failure_is_fatal(plan, tmp_path):
    runner = FakeRunner((1, "/work/image_001.png: Invalid data found when processing input"))

    outcome = asyncio.run(_adapter(runner).execute(plan, str(tmp_path / "attempt.mp4")))

    assert outcome.status is OutcomeStatus.FATAL
    assert outcome.dropped_feature is None


def test_unrecognized_failure_is_fatal(plan, tmp_path):
    runner = FakeRunner((139, "Segmentation fault"))

    outcome = asyncio.run(_adapter(runner).execute(plan, str(tmp_path / "attempt.mp4")))

    assert outcome.status is OutcomeStatus.FATAL
    assert "Segmentation fault" in outcome.diagnostic


def test_missing_engine_binary_is_fatal(plan, tmp_path):
    runner = FakeRunner((127, "ffmpeg: executable not found"))

    outcome = asyncio.run(_adapter(runner).execute(plan, str(tmp_path / "attempt.mp4")))

    assert outcome.status is OutcomeStatus.FATAL


def test_implicated_inputs_in_order_of_appearance(plan):
    stderr = (
        "Error while decoding stream #5:0: Invalid data found when processing input\n"
        "/work/overlay_0.mp4: End of file\n"
        "Error while decoding stream #5:0: Invalid data found when processing input\n"
    )

    found = implicated_inputs(plan, stderr)

    assert [s.role for s in found] == ["ambience", "overlay"]


def test_out_of_range_index_is_ignored(plan):
    assert implicated_inputs(plan, "Error while decoding stream #42:0") == []
