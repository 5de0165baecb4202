from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from mapsync.adapters.api.dependencies import get_geocoder, get_ip_locator
from mapsync.adapters.api.schemas.geo import (
    BoundsSchema,
    CoordinateSchema,
    IpLocationSchema,
    PlaceCandidateSchema,
)
from mapsync.app.ports.output import IGeocoder, IIpLocator
from mapsync.domain.exceptions.geolocation import (
    GeolocationNotConfigured,
    GeolocationUpstreamError,
)
from mapsync.domain.models import Bounds, Coordinate, PlaceCandidate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/geo", tags=["geo"])

LOOPBACK_ADDRESSES = frozenset({"::1", "127.0.0.1", "::ffff:127.0.0.1"})


def client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop, else the peer address; loopback is dropped."""

    forwarded = request.headers.get("x-forwarded-for")
    raw = forwarded.split(",")[0] if forwarded else None
    if not raw and request.client is not None:
        raw = request.client.host
    ip = (raw or "").strip()
    if not ip or ip in LOOPBACK_ADDRESSES:
        return None
    return ip


def _coordinate_schema(c: Coordinate | None) -> CoordinateSchema | None:
    return None if c is None else CoordinateSchema(lat=c.lat, lng=c.lng)


def _bounds_schema(b: Bounds | None) -> BoundsSchema | None:
    if b is None:
        return None
    return BoundsSchema(
        ne=CoordinateSchema(lat=b.ne.lat, lng=b.ne.lng),
        sw=CoordinateSchema(lat=b.sw.lat, lng=b.sw.lng),
    )


def _place_to_schema(place: PlaceCandidate) -> PlaceCandidateSchema:
    return PlaceCandidateSchema(
        place_id=place.place_id,
        address=place.address,
        origin=_coordinate_schema(place.origin),
        bounds=_bounds_schema(place.bounds),
        place_type=place.place_type,
    )


@router.get("/ip", response_model=IpLocationSchema)
async def locate_ip(
    request: Request,
    locator: IIpLocator = Depends(get_ip_locator),
) -> IpLocationSchema:
    try:
        location = await locator.locate(client_ip(request))
    except GeolocationNotConfigured as e:
        raise HTTPException(status_code=501, detail=str(e)) from e
    except GeolocationUpstreamError as e:
        logger.warning("IP geolocation upstream failure: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    if location is None:
        raise HTTPException(status_code=404, detail="Location not available")

    return IpLocationSchema(lat=location.lat, lng=location.lng, source=location.source)


@router.get("/search", response_model=list[PlaceCandidateSchema])
async def search_places(
    q: str = Query(min_length=1),
    countrycodes: str | None = Query(default=None),
    locale: str | None = Query(default=None),
    geocoder: IGeocoder = Depends(get_geocoder),
) -> list[PlaceCandidateSchema]:
    country_filter = (
        [c.strip() for c in countrycodes.split(",") if c.strip()] if countrycodes else None
    )
    predictions = await geocoder.get_place_predictions(q, country_filter, locale)

    out: list[PlaceCandidateSchema] = []
    for prediction in predictions.predictions:
        place = await geocoder.get_place_details(prediction)
        out.append(_place_to_schema(place))
    return out
