"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from slideshow_render.api.dependencies import get_admission, get_compiled_graph
from slideshow_render.api.routes import router
from slideshow_render.config import get_output_dir, settings
from slideshow_render.errors import RenderError

logger = structlog.get_logger()

_OUTPUT_DIR = get_output_dir()


# ---------------------------------------------------------------------------
# CORS configuration
# ---------------------------------------------------------------------------

_DEFAULT_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
}


def _get_allowed_origins() -> set[str]:
    origins = set(_DEFAULT_ORIGINS)
    if settings.allowed_origins:
        origins.update(o.strip() for o in settings.allowed_origins.split(",") if o.strip())
    return origins


_ALLOWED_ORIGINS = _get_allowed_origins()


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the workflow graph and admission gate up front."""
    get_compiled_graph()
    admission = get_admission()
    logger.info(
        "app.startup",
        allowed_origins=sorted(_ALLOWED_ORIGINS),
        admission_slots=admission.slots,
        engine=settings.ffmpeg_binary,
        engine_version=settings.engine_version,
    )
    yield
    logger.info("app.shutdown")


app = FastAPI(
    title="Slideshow Renderer",
    description="Narrated slideshow rendering with graceful degradation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_ALLOWED_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RenderError)
async def render_error_handler(request: Request, exc: RenderError) -> JSONResponse:
    logger.warning("api.render_error", path=request.url.path, error_kind=exc.kind.value, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(router)

# Static file serving for finished artifacts
_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/files/output", StaticFiles(directory=str(_OUTPUT_DIR)), name="output")


@app.get("/health")
async def health_check():
    return {"status": "ok"}
