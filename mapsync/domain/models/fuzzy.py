from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FuzzyConfig:
    """How exact listing locations are hidden before booking."""

    enabled: bool = False
    offset_m: float = 500.0
    default_zoom: int = 13
    circle_color: str = "#c0392b"
