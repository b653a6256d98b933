"""Conditional edge routing functions for the render workflow."""

from __future__ import annotations

from typing import Literal

from slideshow_render.graph.state import RenderJobState

END = "__end__"


def route_after_ingest(state: RenderJobState) -> Literal["plan_timeline", "__end__"]:
    """Required-input failures end the job before any planning."""
    if state.get("error"):
        return END
    return "plan_timeline"


def route_after_plan(state: RenderJobState) -> Literal["render_video", "__end__"]:
    if state.get("error"):
        return END
    return "render_video"


def route_after_render(state: RenderJobState) -> Literal["publish_result", "__end__"]:
    """Only a successful outcome is published; an exhausted ladder ends the job."""
    outcome = state.get("outcome") or {}
    if state.get("error") or outcome.get("status") != "success":
        return END
    return "publish_result"
