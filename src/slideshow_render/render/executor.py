"""Execution Adapter: runs a render plan on the engine and classifies the outcome."""

from __future__ import annotations

import os
import re
from typing import Awaitable, Callable, Optional

import structlog

from slideshow_render.config import settings
from slideshow_render.errors import ErrorKind
from slideshow_render.models.outcome import Feature, OutcomeStatus, RenderOutcome
from slideshow_render.render.graph import InputSource, RenderPlan
from slideshow_render.render.serializer import FfmpegSerializer, serializer_for
from slideshow_render.tools.ffmpeg import EngineRun, run_engine

logger = structlog.get_logger()

EngineRunner = Callable[[list[str]], Awaitable[EngineRun]]

_DIAGNOSTIC_TAIL = 2000

# stderr signatures that point at one specific input, by index
_INDEX_SIGNATURES = (
    re.compile(r"Error while decoding stream #(\d+):\d+"),
    re.compile(r"\[(?:in#|vist#|aist#)(\d+)[:/]"),
    re.compile(r"Input #(\d+)\b.*(?:error|invalid|could not)", re.IGNORECASE),
)

# ... and by path
_PATH_SIGNATURES = (
    re.compile(r"Error opening input(?: file)?:?\s+(?P<path>.+?)\.?\s*$", re.MULTILINE),
    re.compile(
        r"^(?P<path>.+?): (?:Invalid data found when processing input|No such file or directory"
        r"|End of file|Invalid argument|Operation not permitted)",
        re.MULTILINE,
    ),
)


def implicated_inputs(plan: RenderPlan, stderr: str) -> list[InputSource]:
    """Inputs named by recognizable failure signatures, in order of appearance."""
    found: list[tuple[int, InputSource]] = []
    for pattern in _INDEX_SIGNATURES:
        for match in pattern.finditer(stderr):
            index = int(match.group(1))
            if 0 <= index < len(plan.inputs):
                found.append((match.start(), plan.inputs[index]))
    by_path = {source.path: source for source in plan.inputs}
    for pattern in _PATH_SIGNATURES:
        for match in pattern.finditer(stderr):
            path = match.group("path").strip().strip("'\"")
            source = by_path.get(path)
            if source is not None:
                found.append((match.start(), source))

    ordered: list[InputSource] = []
    for _, source in sorted(found, key=lambda item: item[0]):
        if source not in ordered:
            ordered.append(source)
    return ordered


class ExecutionAdapter:
    def __init__(
        self,
        serializer: Optional[FfmpegSerializer] = None,
        runner: Optional[EngineRunner] = None,
        min_artifact_bytes: Optional[int] = None,
    ):
        self.serializer = serializer or serializer_for()
        self.runner = runner or run_engine
        self.min_artifact_bytes = (
            min_artifact_bytes if min_artifact_bytes is not None else settings.min_artifact_bytes
        )

    async def execute(self, plan: RenderPlan, output_path: str) -> RenderOutcome:
        argv = self.serializer.command(plan, output_path)
        run = await self.runner(argv)
        outcome = self.classify(plan, run, output_path)
        logger.info(
            "executor.outcome",
            rung=plan.rung,
            status=outcome.status.value,
            returncode=run.returncode,
            dropped_feature=outcome.dropped_feature.value if outcome.dropped_feature else None,
        )
        return outcome

    def classify(self, plan: RenderPlan, run: EngineRun, output_path: str) -> RenderOutcome:
        diagnostic = run.stderr[-_DIAGNOSTIC_TAIL:]

        def outcome(status: OutcomeStatus, **fields) -> RenderOutcome:
            return RenderOutcome(status=status, rung=plan.rung, features=plan.features, diagnostic=diagnostic, **fields)

        if run.returncode == 0:
            size = os.path.getsize(output_path) if os.path.isfile(output_path) else 0
            if size >= self.min_artifact_bytes:
                return outcome(OutcomeStatus.SUCCESS, artifact_path=output_path, diagnostic="")
            return outcome(
                OutcomeStatus.FATAL,
                error_kind=ErrorKind.ENGINE_FATAL.value,
                diagnostic=f"engine exited 0 but artifact is missing or too small ({size} bytes)\n{diagnostic}",
            )

        for source in implicated_inputs(plan, run.stderr):
            if source.feature in (Feature.OVERLAY, Feature.AMBIENCE, Feature.END_CARD):
                return outcome(
                    OutcomeStatus.RECOVERABLE,
                    error_kind=ErrorKind.ENGINE_RECOVERABLE.value,
                    dropped_feature=source.feature,
                )
        return outcome(OutcomeStatus.FATAL, error_kind=ErrorKind.ENGINE_FATAL.value)
