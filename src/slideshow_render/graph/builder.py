"""StateGraph definition — assembles nodes, edges, and conditional routing."""

from __future__ import annotations

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, StateGraph

from slideshow_render.graph.edges import route_after_ingest, route_after_plan, route_after_render
from slideshow_render.graph.state import RenderJobState
from slideshow_render.nodes.asset_intake import make_ingest_assets
from slideshow_render.nodes.publish_result import make_publish_result
from slideshow_render.nodes.render_video import make_render_video
from slideshow_render.nodes.timeline_planning import make_plan_timeline
from slideshow_render.services import RenderServices


def build_graph(services: RenderServices, checkpointer: BaseCheckpointSaver | None = None):
    """Build and compile the render-job workflow graph.

    Args:
        services: Collaborators (fetcher, resolver, planner, executor) for the nodes.
        checkpointer: Optional checkpoint saver; job status is read back from it.

    Returns:
        Compiled StateGraph ready for invocation.
    """
    graph = StateGraph(RenderJobState)

    graph.add_node("ingest_assets", make_ingest_assets(services))
    graph.add_node("plan_timeline", make_plan_timeline(services))
    graph.add_node("render_video", make_render_video(services))
    graph.add_node("publish_result", make_publish_result(services))

    graph.set_entry_point("ingest_assets")

    graph.add_conditional_edges(
        "ingest_assets",
        route_after_ingest,
        {"plan_timeline": "plan_timeline", END: END},
    )
    graph.add_conditional_edges(
        "plan_timeline",
        route_after_plan,
        {"render_video": "render_video", END: END},
    )
    graph.add_conditional_edges(
        "render_video",
        route_after_render,
        {"publish_result": "publish_result", END: END},
    )
    graph.add_edge("publish_result", END)

    return graph.compile(checkpointer=checkpointer)
