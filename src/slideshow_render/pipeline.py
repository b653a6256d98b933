"""Render job runner: admission, workspace, workflow invocation, status reporting."""

from __future__ import annotations

import uuid

import structlog

from slideshow_render.admission import JobAdmission
from slideshow_render.errors import EngineFatal, RenderError, error_from_kind
from slideshow_render.models.outcome import FeatureFlags, RenderResult
from slideshow_render.models.request import RenderRequest
from slideshow_render.nodes.asset_intake import validate_request
from slideshow_render.tools.supabase_storage import update_job_status
from slideshow_render.workspace import job_workspace

logger = structlog.get_logger()


def ensure_job_id(request: RenderRequest) -> str:
    return request.job_id or str(uuid.uuid4())


def initial_state(job_id: str, request: RenderRequest, work_dir: str) -> dict:
    return {
        "job_id": job_id,
        "request": {
            "images": list(request.images),
            "narration_audio": request.narration_audio or "",
            "aspect_ratio": request.aspect_ratio or "",
            "theme": request.theme,
            "use_end_card": request.use_end_card,
        },
        "work_dir": work_dir,
        "assets": None,
        "timeline": None,
        "outcome": None,
        "attempts": [],
        "result": None,
        "error": None,
        "error_kind": None,
    }


async def execute_job(graph, request: RenderRequest, job_id: str) -> RenderResult:
    """Run one admitted job through the workflow graph.

    The caller must already hold an admission slot for *job_id*.

    Raises:
        RenderError: The typed terminal error of the job.
    """
    await update_job_status(job_id, "rendering")
    config = {"configurable": {"thread_id": job_id}}

    try:
        with job_workspace(job_id) as work_dir:
            final = await graph.ainvoke(initial_state(job_id, request, str(work_dir)), config=config)
    except RenderError:
        raise
    except Exception as exc:
        logger.exception("pipeline.failed", job_id=job_id)
        await update_job_status(job_id, "failed", error_kind=EngineFatal.kind.value, message=str(exc))
        raise EngineFatal(f"render job crashed: {exc}") from exc

    if final.get("error") or not final.get("result"):
        error = error_from_kind(final.get("error_kind"), final.get("error") or "render produced no artifact")
        logger.warning("pipeline.job_failed", job_id=job_id, error_kind=error.kind.value)
        await update_job_status(job_id, "failed", error_kind=error.kind.value, message=error.message[-1000:])
        raise error

    result = final["result"]
    render_result = RenderResult(
        job_id=job_id,
        artifact_path=result["artifact_path"],
        artifact_url=result["artifact_url"],
        duration_sec=result["duration_sec"],
        features=FeatureFlags(**result["features"]),
        attempts=final.get("attempts", []),
    )
    await update_job_status(
        job_id,
        "completed",
        artifact_url=render_result.artifact_url,
        duration_sec=render_result.duration_sec,
        features=sorted(f.value for f in render_result.features.enabled()),
    )
    logger.info("pipeline.completed", job_id=job_id, attempts=len(render_result.attempts))
    return render_result


async def run_render_job(graph, request: RenderRequest, admission: JobAdmission) -> RenderResult:
    """Validate, admit and run a job synchronously.

    Raises:
        InputMissing: Before any download when a required field is absent.
        RenderBusy: When no admission slot is free.
    """
    job_id = ensure_job_id(request)
    validate_request(request)
    async with admission.admit(job_id):
        return await execute_job(graph, request, job_id)


async def run_admitted_job(graph, request: RenderRequest, job_id: str, admission: JobAdmission) -> None:
    """Background variant: the slot was taken by the caller and is released here."""
    try:
        await execute_job(graph, request, job_id)
    except RenderError as exc:
        logger.warning("pipeline.background_failed", job_id=job_id, error_kind=exc.kind.value)
    finally:
        admission.release(job_id)
