"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Theme asset library (http(s) base URL or local directory)
    asset_base_url: str = "./assets"
    default_ambience: str = "ambience/default_room_tone.mp3"
    default_overlay: str = "overlays/default_dust.mp4"
    theme_rules_path: str = ""

    # Timeline
    min_scene_seconds: float = 3.0
    fade_ratio: float = 0.35
    min_fade_seconds: float = 0.25
    max_fade_seconds: float = 1.0
    transition_style: str = "cut"  # "cut" | "crossfade"

    # Motion
    motion_zoom: float = 1.2
    pan_zoom: float = 1.15
    video_fps: int = 30

    # Decorative mix levels
    overlay_opacity: float = Field(default=0.18, ge=0.10, le=0.25)
    ambience_volume: float = Field(default=0.2, ge=0.15, le=0.25)

    # End card
    end_card_path: str = ""
    end_card_seconds: float = 3.0

    # Downloads
    fetch_retries: int = 3
    fetch_backoff_seconds: float = 0.5
    fetch_timeout_seconds: float = 30.0
    max_concurrent_downloads: int = 4

    # Aspect ratio → canvas
    resolutions: dict[str, str] = {"16:9": "1920x1080", "9:16": "1080x1920"}

    # Compositing engine
    ffmpeg_binary: str = "ffmpeg"
    engine_version: str = "6.0"
    video_preset: str = "veryfast"
    video_crf: int = 23
    audio_bitrate: str = "192k"
    min_artifact_bytes: int = 1024

    # Working directories
    work_dir_root: str = ""
    output_base_dir: str = "./output"

    # Storage / status collaborator
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_storage_bucket: str = "renders"
    supabase_status_table: str = "render_jobs"

    # HTTP
    allowed_origins: str = ""

    # Admission
    admission_slots: int = 1


settings = Settings()


def get_output_dir() -> Path:
    """Return the directory finished artifacts are copied into."""
    return Path(settings.output_base_dir)


def parse_resolution(value: str) -> tuple[int, int]:
    """Parse a ``WxH`` string into ``(width, height)``."""
    width, height = (int(x) for x in value.lower().split("x"))
    return width, height
