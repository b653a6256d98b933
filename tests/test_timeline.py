from __future__ import annotations

import math

import pytest

from slideshow_render.errors import TimelineInfeasible
from slideshow_render.models.timeline import MotionPreset, TransitionStyle
from slideshow_render.render.timeline import MOTION_CYCLE, TimelinePlanner, end_card_fits


@pytest.mark.parametrize("duration", [0.5, 2.0, 7.3, 18.0, 61.7, 240.0])
@pytest.mark.parametrize("count", [1, 2, 5, 6, 10, 37])
@pytest.mark.parametrize("style", list(TransitionStyle))
def test_visible_durations_cover_the_story(planner, duration, count, style):
    timeline = planner.plan(duration, count, transition=style)

    assert len(timeline.scenes) == count
    assert math.isclose(sum(s.visible_duration for s in timeline.scenes), duration, abs_tol=1e-9)
    assert all(s.duration >= planner.min_scene_seconds for s in timeline.scenes)
    assert timeline.scene_track_duration >= duration - 1e-9


def test_end_card_is_carved_out_of_the_narration(planner):
    timeline = planner.plan(30.0, 4, has_end_card=True, end_card_duration=3.0)

    assert timeline.story_duration == pytest.approx(27.0)
    assert timeline.narration_duration == 30.0
    assert sum(s.visible_duration for s in timeline.scenes) == pytest.approx(27.0)
    assert timeline.has_end_card


def test_single_image_spans_the_story_without_crossfade(planner):
    timeline = planner.plan(12.0, 1, transition=TransitionStyle.CROSSFADE)

    assert len(timeline.scenes) == 1
    assert timeline.crossfade_count == 0
    assert timeline.transition is TransitionStyle.CUT
    scene = timeline.scenes[0]
    assert scene.duration == pytest.approx(12.0)
    assert scene.fade_in and scene.fade_out


def test_eighteen_seconds_six_images_simple_cut(planner):
    timeline = planner.plan(18.0, 6)

    assert timeline.per_scene_duration == 3.0
    assert [s.offset for s in timeline.scenes] == [0, 3, 6, 9, 12, 15]
    assert [s.visible_duration for s in timeline.scenes] == [3.0] * 6


def test_eighteen_seconds_six_images_crossfade(planner):
    timeline = planner.plan(18.0, 6, transition=TransitionStyle.CROSSFADE)
    fade = timeline.fade_duration

    assert timeline.per_scene_duration == 3.0
    assert fade == pytest.approx(1.0)  # 0.35 * 3.0 clamped to max_fade
    clip = 3.0 + fade * 5 / 6
    for i, scene in enumerate(timeline.scenes):
        assert scene.duration == pytest.approx(clip)
        assert scene.offset == pytest.approx(i * clip - i * fade)
    assert timeline.crossfade_count == 5
    assert timeline.scene_track_duration == pytest.approx(18.0)


def test_crossfade_overlap_is_shared_by_every_scene(planner):
    timeline = planner.plan(90.0, 30, transition=TransitionStyle.CROSSFADE)
    visible = [s.visible_duration for s in timeline.scenes]

    assert len({round(s.duration, 9) for s in timeline.scenes}) == 1
    # the final scene only keeps its own unshared fade window
    assert max(visible) - min(visible) == pytest.approx(timeline.fade_duration)
    assert visible[-1] < 2 * timeline.per_scene_duration
    assert timeline.scene_track_duration == pytest.approx(90.0)


def test_short_narration_floors_scene_length(planner):
    timeline = planner.plan(2.0, 10)

    assert timeline.per_scene_duration == 3.0
    assert all(s.duration == 3.0 for s in timeline.scenes)
    assert timeline.scene_track_duration == pytest.approx(30.0)
    # only the visual tail is trimmed; the narration length is the target
    assert timeline.story_duration == 2.0
    assert timeline.scenes[0].visible_duration == pytest.approx(2.0)
    assert all(s.visible_duration == 0 for s in timeline.scenes[1:])


def test_fade_is_clamped(planner):
    assert planner.fade_for(3.0) == pytest.approx(1.0)
    assert planner.fade_for(0.4) == pytest.approx(0.2)  # never more than half a scene
    short = TimelinePlanner(min_scene_seconds=0.5, fade_ratio=0.35, min_fade=0.25, max_fade=1.0)
    assert short.fade_for(1.0) == pytest.approx(0.35)


def test_motion_alternates_deterministically(planner):
    first = planner.plan(60.0, 8)
    second = planner.plan(60.0, 8)

    assert [s.motion for s in first.scenes] == [s.motion for s in second.scenes]
    assert [s.motion for s in first.scenes][:6] == list(MOTION_CYCLE)
    assert first.scenes[6].motion is MOTION_CYCLE[0]
    assert len({s.motion for s in first.scenes[:2]}) == 2


def test_static_plan_has_no_motion(planner):
    timeline = planner.plan(12.0, 3, motion=False)

    assert all(s.motion is MotionPreset.STATIC for s in timeline.scenes)
    assert not timeline.has_motion


def test_cut_style_fade_flags(planner):
    scenes = planner.plan(12.0, 4).scenes

    assert (scenes[0].fade_in, scenes[0].fade_out) == (True, False)
    assert (scenes[1].fade_in, scenes[1].fade_out) == (True, True)
    assert (scenes[-1].fade_in, scenes[-1].fade_out) == (False, True)


def test_crossfade_fade_flags(planner):
    scenes = planner.plan(12.0, 4, transition=TransitionStyle.CROSSFADE).scenes

    assert [s.fade_in for s in scenes] == [True, False, False, False]
    assert [s.fade_out for s in scenes] == [False, False, False, True]


@pytest.mark.parametrize("duration", [0.0, -4.0, float("nan"), float("inf")])
def test_non_positive_narration_is_infeasible(planner, duration):
    with pytest.raises(TimelineInfeasible):
        planner.plan(duration, 3)


def test_end_card_longer_than_narration_is_infeasible(planner):
    with pytest.raises(TimelineInfeasible):
        planner.plan(3.0, 2, has_end_card=True, end_card_duration=3.0)


def test_no_images_is_infeasible(planner):
    with pytest.raises(TimelineInfeasible):
        planner.plan(10.0, 0)


def test_end_card_fits():
    assert end_card_fits(10.0, 3.0, 3.0)
    assert not end_card_fits(5.0, 3.0, 3.0)
