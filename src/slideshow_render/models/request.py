"""Pydantic model for an inbound render request."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AspectRatio = Literal["16:9", "9:16"]


class RenderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: Optional[str] = Field(default=None, alias="jobId")
    images: list[str] = Field(default_factory=list, description="Image URLs or local paths, in scene order")
    narration_audio: Optional[str] = Field(default=None, alias="narrationAudio")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, alias="aspectRatio")
    theme: Optional[str] = None
    use_end_card: bool = Field(default=False, alias="useEndCard")
