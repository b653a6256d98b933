"""FastAPI route handlers for the render API."""

from __future__ import annotations

import shutil
from pathlib import Path

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from slideshow_render.admission import JobAdmission
from slideshow_render.api.dependencies import get_admission, get_compiled_graph
from slideshow_render.api.schemas import (
    ErrorResponse,
    RenderAcceptedResponse,
    RenderJobStatusResponse,
    RenderRequest,
)
from slideshow_render.errors import RenderBusy
from slideshow_render.nodes.asset_intake import validate_request
from slideshow_render.pipeline import ensure_job_id, run_admitted_job, run_render_job
from slideshow_render.tools.supabase_storage import update_job_status

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/render")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    424: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("", response_class=FileResponse, responses=_ERROR_RESPONSES)
async def render_now(
    request: RenderRequest,
    graph=Depends(get_compiled_graph),
    admission: JobAdmission = Depends(get_admission),
):
    """Render synchronously and stream the MP4 back; the local copy is removed after sending."""
    result = await run_render_job(graph, request, admission)
    artifact = Path(result.artifact_path)
    logger.info("render.sync.completed", job_id=result.job_id, path=str(artifact))
    return FileResponse(
        artifact,
        media_type="video/mp4",
        filename=f"{result.job_id}.mp4",
        background=BackgroundTask(shutil.rmtree, artifact.parent, ignore_errors=True),
    )


@router.post("/jobs", status_code=202, response_model=RenderAcceptedResponse, responses=_ERROR_RESPONSES)
async def submit_render_job(
    request: RenderRequest,
    background_tasks: BackgroundTasks,
    graph=Depends(get_compiled_graph),
    admission: JobAdmission = Depends(get_admission),
):
    """Accept a render job and run it in the background; status goes to the status collaborator."""
    job_id = ensure_job_id(request)
    validate_request(request)
    if not admission.try_acquire(job_id):
        raise RenderBusy("a render job is already in progress; retry later")

    await update_job_status(job_id, "accepted")
    background_tasks.add_task(run_admitted_job, graph, request, job_id, admission)

    logger.info("render.job.accepted", job_id=job_id)
    return RenderAcceptedResponse(job_id=job_id)


@router.get("/jobs/{job_id}", response_model=RenderJobStatusResponse, response_model_by_alias=True)
async def get_render_job_status(job_id: str, graph=Depends(get_compiled_graph)):
    """Get the current status of a render job from the workflow checkpointer."""
    config = {"configurable": {"thread_id": job_id}}

    try:
        state = await graph.aget_state(config)
    except Exception:
        logger.warning("render.status.checkpointer_error", job_id=job_id, exc_info=True)
        return RenderJobStatusResponse(job_id=job_id, status="running")

    if not state.values:
        raise HTTPException(status_code=404, detail=f"Render job {job_id} not found")

    values = state.values
    attempts = values.get("attempts") or []
    if values.get("error"):
        return RenderJobStatusResponse(
            job_id=job_id,
            status="failed",
            error_kind=values.get("error_kind"),
            message=values.get("error"),
            attempts=attempts,
        )

    result = values.get("result")
    if result:
        return RenderJobStatusResponse(
            job_id=job_id,
            status="completed",
            artifact_url=result.get("artifact_url") or None,
            features=result.get("features"),
            attempts=attempts,
        )

    return RenderJobStatusResponse(
        job_id=job_id,
        status="running",
        current_node=state.next[0] if state.next else None,
        attempts=attempts,
    )
