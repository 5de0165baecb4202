from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .listing import MarkerKind


class OverlayPane(str, Enum):
    """Stacking slot of an overlay; the info card always sits on top."""

    LABEL = "label"
    FLOAT = "float"


@dataclass(frozen=True, slots=True)
class OverlayContent:
    """Provider-agnostic description of what an overlay shows."""

    overlay_id: str
    kind: MarkerKind
    listing_ids: tuple[str, ...]
    label: str = ""
    is_active: bool = False
