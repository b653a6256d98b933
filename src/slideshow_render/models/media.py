"""Pydantic models for media references and validated assets."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MediaKind(str, Enum):
    IMAGE = "image"
    NARRATION = "narration"
    AMBIENCE = "ambience"
    OVERLAY = "overlay"
    END_CARD = "end_card"


class MediaRef(BaseModel):
    kind: MediaKind
    source: str
    local_path: Optional[str] = None


class ValidatedAsset(BaseModel):
    """A materialized media reference plus its validation verdict."""

    model_config = ConfigDict(frozen=True)

    ref: MediaRef
    valid: bool
    reason: str = ""
    duration: Optional[float] = None  # audio/video only
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def path(self) -> str:
        return self.ref.local_path or ""


class AssetBundle(BaseModel):
    """Everything the plan builder may reference for one job."""

    images: list[ValidatedAsset]
    narration: ValidatedAsset
    ambience: Optional[ValidatedAsset] = None
    overlay: Optional[ValidatedAsset] = None
    end_card: Optional[ValidatedAsset] = None

    def usable(self, asset: Optional[ValidatedAsset]) -> Optional[ValidatedAsset]:
        """Return *asset* only when it passed validation."""
        if asset is None or not asset.valid:
            return None
        return asset
