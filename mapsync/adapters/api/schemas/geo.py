from __future__ import annotations

from pydantic import BaseModel


class CoordinateSchema(BaseModel):
    lat: float
    lng: float


class BoundsSchema(BaseModel):
    ne: CoordinateSchema
    sw: CoordinateSchema


class PlaceCandidateSchema(BaseModel):
    place_id: str | None = None
    address: str
    origin: CoordinateSchema | None = None
    bounds: BoundsSchema | None = None
    place_type: str | None = None


class IpLocationSchema(BaseModel):
    lat: float
    lng: float
    source: str
