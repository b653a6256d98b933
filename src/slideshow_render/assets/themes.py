"""Theme rule table: ordered match rules mapping free-text themes to asset candidates."""

from __future__ import annotations

import json
import re
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from slideshow_render.models.media import MediaKind


class ThemeRule(BaseModel):
    name: str
    keywords: list[str] = Field(default_factory=list)
    ambience: list[str] = Field(default_factory=list)
    overlay: list[str] = Field(default_factory=list)

    def candidates(self, kind: MediaKind) -> list[str]:
        if kind is MediaKind.AMBIENCE:
            return list(self.ambience)
        if kind is MediaKind.OVERLAY:
            return list(self.overlay)
        return []


class ThemeTable(BaseModel):
    rules: list[ThemeRule]
    default: ThemeRule


# ---------------------------------------------------------------------------
# Built-in table
# ---------------------------------------------------------------------------

DEFAULT_THEME_TABLE = ThemeTable(
    rules=[
        ThemeRule(
            name="horror",
            keywords=["horror", "scary", "creepy", "haunted", "ghost", "spooky", "dark"],
            ambience=["ambience/horror_drone.mp3", "ambience/horror_wind.mp3"],
            overlay=["overlays/film_scratches.mp4", "overlays/dust_dark.mp4"],
        ),
        ThemeRule(
            name="mystery",
            keywords=["mystery", "crime", "detective", "noir", "secret", "unsolved"],
            ambience=["ambience/mystery_pulse.mp3", "ambience/rain_city.mp3"],
            overlay=["overlays/film_grain.mp4"],
        ),
        ThemeRule(
            name="nature",
            keywords=["nature", "forest", "jungle", "wildlife", "animal", "mountain"],
            ambience=["ambience/forest_birds.mp3", "ambience/wind_meadow.mp3"],
            overlay=["overlays/light_leaks_warm.mp4"],
        ),
        ThemeRule(
            name="ocean",
            keywords=["ocean", "sea", "beach", "underwater", "ship", "sailor"],
            ambience=["ambience/ocean_waves.mp3", "ambience/harbor.mp3"],
            overlay=["overlays/bokeh_blue.mp4"],
        ),
        ThemeRule(
            name="space",
            keywords=["space", "galaxy", "planet", "astronaut", "cosmic", "sci-fi", "scifi", "future"],
            ambience=["ambience/space_hum.mp3", "ambience/deep_space.mp3"],
            overlay=["overlays/stars_drift.mp4", "overlays/particles.mp4"],
        ),
        ThemeRule(
            name="history",
            keywords=["history", "ancient", "war", "medieval", "empire", "vintage", "historic"],
            ambience=["ambience/old_room.mp3", "ambience/battlefield_distant.mp3"],
            overlay=["overlays/film_scratches.mp4", "overlays/sepia_grain.mp4"],
        ),
        ThemeRule(
            name="fantasy",
            keywords=["fantasy", "magic", "dragon", "fairy", "myth", "legend"],
            ambience=["ambience/magic_shimmer.mp3"],
            overlay=["overlays/particles.mp4", "overlays/light_leaks_warm.mp4"],
        ),
        ThemeRule(
            name="city",
            keywords=["city", "urban", "street", "night", "cyberpunk", "neon"],
            ambience=["ambience/city_traffic.mp3", "ambience/rain_city.mp3"],
            overlay=["overlays/bokeh_neon.mp4"],
        ),
        ThemeRule(
            name="romance",
            keywords=["romance", "love", "wedding", "heart"],
            ambience=["ambience/soft_piano_room.mp3"],
            overlay=["overlays/bokeh_warm.mp4"],
        ),
    ],
    default=ThemeRule(
        name="default",
        ambience=["ambience/room_tone_soft.mp3"],
        overlay=["overlays/dust_light.mp4"],
    ),
)


def normalize_theme(theme: str | None) -> str:
    return " ".join((theme or "").casefold().split())


def _contains_word(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword.casefold())}\b", text) is not None


def match_rule(theme: str | None, table: ThemeTable = DEFAULT_THEME_TABLE) -> ThemeRule:
    """Pick the rule for *theme*.

    An exact match on a rule name or keyword wins; otherwise the first rule
    (in table order) with a keyword appearing as a whole word in the theme;
    otherwise the default bucket.
    """
    normalized = normalize_theme(theme)
    if not normalized:
        return table.default

    for rule in table.rules:
        if normalized == rule.name.casefold() or normalized in (k.casefold() for k in rule.keywords):
            return rule

    for rule in table.rules:
        if any(_contains_word(normalized, k) for k in (rule.name, *rule.keywords)):
            return rule

    return table.default


def load_theme_table(path: str) -> ThemeTable:
    """Load a rule table from JSON (``{"rules": [...], "default": {...}}``)."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return TypeAdapter(ThemeTable).validate_python(raw)
