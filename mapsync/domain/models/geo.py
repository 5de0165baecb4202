from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")


@dataclass(frozen=True, slots=True)
class Bounds:
    """Rectangle given by its northeast and southwest corners.

    `sw.lng > ne.lng` is legal and means the box crosses the antimeridian.
    """

    ne: Coordinate
    sw: Coordinate

    def __post_init__(self) -> None:
        if self.ne.lat < self.sw.lat:
            raise ValueError(
                f"Invalid bounds: north {self.ne.lat} is below south {self.sw.lat}"
            )

    @property
    def crosses_antimeridian(self) -> bool:
        return self.sw.lng > self.ne.lng


@dataclass(frozen=True, slots=True)
class ViewportSnapshot:
    """Truncated viewport, used for equality checks only."""

    bounds: Bounds
    center: Coordinate | None = None


@dataclass(frozen=True, slots=True)
class ViewportChange:
    viewport_bounds: Bounds | None
    viewport_center: Coordinate | None
