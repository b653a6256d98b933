"""Pydantic models for render features and attempt outcomes."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Feature(str, Enum):
    OVERLAY = "overlay"
    AMBIENCE = "ambience"
    END_CARD = "end_card"
    CROSSFADE = "crossfade"
    MOTION = "motion"


class FeatureFlags(BaseModel):
    """Which optional parts a render plan includes."""

    model_config = ConfigDict(frozen=True)

    overlay: bool = False
    ambience: bool = False
    end_card: bool = False
    crossfade: bool = False
    motion: bool = False

    def enabled(self) -> frozenset[Feature]:
        return frozenset(f for f in Feature if getattr(self, f.value))

    def issubset(self, other: FeatureFlags) -> bool:
        return self.enabled() <= other.enabled()

    def without(self, *features: Feature) -> FeatureFlags:
        return self.model_copy(update={f.value: False for f in features})

    def intersect(self, other: FeatureFlags) -> FeatureFlags:
        return FeatureFlags(**{f.value: f in self.enabled() & other.enabled() for f in Feature})


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class RenderOutcome(BaseModel):
    """Result of exactly one render attempt."""

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    rung: str
    features: FeatureFlags
    artifact_path: Optional[str] = None
    error_kind: Optional[str] = None
    diagnostic: str = ""
    dropped_feature: Optional[Feature] = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


class RenderResult(BaseModel):
    """Final artifact of a job, handed to storage or the HTTP response."""

    job_id: str
    artifact_path: str
    artifact_url: str = ""
    duration_sec: float
    features: FeatureFlags
    attempts: list[dict]
