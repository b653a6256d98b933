"""ffmpeg process invocation: one blocking encode per call, awaited as a subprocess."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class EngineRun:
    returncode: int
    stderr: str


async def run_engine(argv: list[str]) -> EngineRun:
    """Run the compositing engine and collect its exit status and stderr.

    A missing binary is reported as exit status 127 rather than raised, so the
    caller classifies it like any other failed attempt.
    """
    logger.info("ffmpeg.start", binary=argv[0], args=len(argv))
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        logger.error("ffmpeg.not_found", binary=argv[0])
        return EngineRun(returncode=127, stderr=f"{argv[0]}: engine binary not found")

    _, stderr = await proc.communicate()
    text = stderr.decode("utf-8", errors="replace")
    logger.info("ffmpeg.done", returncode=proc.returncode, stderr_tail=text[-300:])
    return EngineRun(returncode=proc.returncode if proc.returncode is not None else -1, stderr=text)
