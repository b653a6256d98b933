"""Error taxonomy shared by the pipeline, the workflow graph and the HTTP layer."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INPUT_MISSING = "InputMissing"
    ASSET_FETCH_FAILED = "AssetFetchFailed"
    ASSET_INVALID = "AssetInvalid"
    TIMELINE_INFEASIBLE = "TimelineInfeasible"
    ENGINE_RECOVERABLE = "EngineRecoverable"
    ENGINE_FATAL = "EngineFatal"
    RENDER_BUSY = "RenderBusy"


class RenderError(Exception):
    """Base error carrying a taxonomy kind and an HTTP status for the API layer."""

    kind: ErrorKind = ErrorKind.ENGINE_FATAL
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"errorKind": self.kind.value, "message": self.message}


class InputMissing(RenderError):
    kind = ErrorKind.INPUT_MISSING
    status_code = 400


class AssetFetchFailed(RenderError):
    kind = ErrorKind.ASSET_FETCH_FAILED
    status_code = 424


class AssetInvalid(RenderError):
    kind = ErrorKind.ASSET_INVALID
    status_code = 422


class TimelineInfeasible(RenderError):
    kind = ErrorKind.TIMELINE_INFEASIBLE
    status_code = 422


class EngineRecoverable(RenderError):
    kind = ErrorKind.ENGINE_RECOVERABLE
    status_code = 500


class EngineFatal(RenderError):
    kind = ErrorKind.ENGINE_FATAL
    status_code = 500


class RenderBusy(RenderError):
    kind = ErrorKind.RENDER_BUSY
    status_code = 429


_BY_KIND: dict[str, type[RenderError]] = {
    cls.kind.value: cls
    for cls in (
        InputMissing,
        AssetFetchFailed,
        AssetInvalid,
        TimelineInfeasible,
        EngineRecoverable,
        EngineFatal,
        RenderBusy,
    )
}


def error_from_kind(kind: str | None, message: str) -> RenderError:
    """Rebuild a typed error from the ``error_kind`` string stored in workflow state."""
    cls = _BY_KIND.get(kind or "", EngineFatal)
    return cls(message)
