"""Geocoding pass-through endpoints for the report form."""

from typing import List, Optional

from fastapi import APIRouter, Query

import models.schemas as schemas
from services import GeocodingService

router = APIRouter(prefix="/location", tags=["location"])


@router.get("/search", response_model=List[schemas.LocationResult])
async def search_locations(
    q: str = Query(..., min_length=1, max_length=200),
) -> List[schemas.LocationResult]:
    """Search places by name; empty when the geocoder is unavailable."""
    return await GeocodingService.search(q)


@router.get("/reverse", response_model=Optional[schemas.ReverseLocation])
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
) -> Optional[schemas.ReverseLocation]:
    """Describe the place at the given coordinates, or null."""
    return await GeocodingService.reverse(lat, lon)
