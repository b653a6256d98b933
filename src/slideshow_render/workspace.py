"""Per-job working directory, owned by exactly one job and removed afterwards."""

from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from slideshow_render.config import settings

logger = structlog.get_logger()


@contextmanager
def job_workspace(job_id: str, root: str | None = None) -> Iterator[Path]:
    """Create a private directory for *job_id*; delete it on success and failure."""
    base = root if root is not None else (settings.work_dir_root or None)
    if base:
        Path(base).mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=f"render-{job_id}-", dir=base))
    logger.info("workspace.created", job_id=job_id, path=str(path))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.info("workspace.removed", job_id=job_id, path=str(path))
