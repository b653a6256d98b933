"""Collaborators wired into the workflow nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from slideshow_render.assets.resolver import ThemeAssetResolver
from slideshow_render.assets.validator import MediaProber
from slideshow_render.config import parse_resolution, settings
from slideshow_render.render.builder import RenderPlanBuilder
from slideshow_render.render.degradation import DegradationController
from slideshow_render.render.executor import ExecutionAdapter
from slideshow_render.render.timeline import TimelinePlanner
from slideshow_render.tools.http_fetch import AssetFetcher
from slideshow_render.tools.moviepy_tools import MoviepyProber


@dataclass
class RenderServices:
    fetcher: AssetFetcher
    resolver: ThemeAssetResolver
    planner: TimelinePlanner
    executor: ExecutionAdapter
    prober: MediaProber = field(default_factory=MoviepyProber)
    resolutions: Optional[dict[str, str]] = None

    def canvas_for(self, aspect_ratio: str) -> tuple[int, int]:
        resolutions = self.resolutions or settings.resolutions
        if aspect_ratio not in resolutions:
            raise ValueError(f"unsupported aspect ratio {aspect_ratio!r}")
        return parse_resolution(resolutions[aspect_ratio])

    def builder_for(self, aspect_ratio: str) -> RenderPlanBuilder:
        width, height = self.canvas_for(aspect_ratio)
        return RenderPlanBuilder(width=width, height=height)

    def controller_for(self, aspect_ratio: str) -> DegradationController:
        return DegradationController(self.builder_for(aspect_ratio), self.executor, self.planner)


def default_services() -> RenderServices:
    prober = MoviepyProber()
    fetcher = AssetFetcher()
    return RenderServices(
        fetcher=fetcher,
        resolver=ThemeAssetResolver(fetcher, prober=prober),
        planner=TimelinePlanner(),
        executor=ExecutionAdapter(),
        prober=prober,
    )
