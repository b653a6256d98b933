"""FastAPI dependency injection: graph instance, checkpointer and admission gate."""

from __future__ import annotations

from functools import lru_cache

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import InMemorySaver

from slideshow_render.admission import JobAdmission
from slideshow_render.config import settings
from slideshow_render.graph.builder import build_graph
from slideshow_render.services import RenderServices, default_services


@lru_cache(maxsize=1)
def get_checkpointer() -> BaseCheckpointSaver:
    """Return a singleton in-memory checkpointer (job status lives for the process)."""
    return InMemorySaver()


@lru_cache(maxsize=1)
def get_services() -> RenderServices:
    return default_services()


@lru_cache(maxsize=1)
def get_compiled_graph():
    """Return the compiled render workflow with checkpointer."""
    return build_graph(get_services(), checkpointer=get_checkpointer())


@lru_cache(maxsize=1)
def get_admission() -> JobAdmission:
    """Return the worker-wide admission gate."""
    return JobAdmission(slots=settings.admission_slots)
