"""Request/Response schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from slideshow_render.models.request import RenderRequest

__all__ = [
    "ErrorResponse",
    "RenderAcceptedResponse",
    "RenderJobStatusResponse",
    "RenderRequest",
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(_CamelModel):
    error_kind: str = Field(alias="errorKind")
    message: str


class RenderAcceptedResponse(_CamelModel):
    job_id: str = Field(alias="jobId")
    status: str = "accepted"


class RenderJobStatusResponse(_CamelModel):
    job_id: str = Field(alias="jobId")
    status: str  # "running" | "completed" | "failed"
    current_node: Optional[str] = Field(default=None, alias="currentNode")
    error_kind: Optional[str] = Field(default=None, alias="errorKind")
    message: Optional[str] = None
    artifact_url: Optional[str] = Field(default=None, alias="artifactUrl")
    features: Optional[dict[str, bool]] = None
    attempts: list[dict[str, Any]] = Field(default_factory=list)
