"""Central render-job state definition for the LangGraph workflow."""

from __future__ import annotations

from typing import Optional

from typing_extensions import TypedDict


class JobRequest(TypedDict):
    images: list[str]
    narration_audio: str
    aspect_ratio: str
    theme: Optional[str]
    use_end_card: bool


class AttemptRecord(TypedDict):
    rung: str
    status: str  # "success" | "recoverable" | "fatal"
    features: list[str]
    error_kind: Optional[str]
    dropped_feature: Optional[str]
    diagnostic: str


class JobResult(TypedDict):
    artifact_path: str
    artifact_url: str
    duration_sec: float
    features: dict[str, bool]


class RenderJobState(TypedDict):
    """State shared across all workflow nodes; values stay JSON-friendly."""

    job_id: str
    request: JobRequest
    work_dir: str

    # Node outputs (model_dump of the pydantic models)
    assets: Optional[dict]
    timeline: Optional[dict]
    outcome: Optional[dict]
    attempts: list[AttemptRecord]
    result: Optional[JobResult]

    # Error tracking
    error: Optional[str]
    error_kind: Optional[str]
