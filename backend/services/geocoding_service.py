"""
Geocoding pass-through to a Nominatim-compatible service.

Lookups are a convenience for the report form: any upstream failure is logged
and degrades to an empty result instead of failing the request.
"""

from typing import Any, List, Optional

import httpx
from loguru import logger

import models.schemas as schemas
from models.config import settings
from models.exceptions import UpstreamDegradedException

SEARCH_RESULT_LIMIT = 5
GEOCODING_TIMEOUT_SECONDS = 5.0


class GeocodingService:
    """Forward and reverse geocoding."""

    @staticmethod
    async def _get(path: str, params: dict) -> Any:
        url = f"{settings.GEOCODING_BASE_URL.rstrip('/')}/{path}"
        headers = {
            "Accept": "application/json",
            "User-Agent": settings.GEOCODING_USER_AGENT,
        }
        try:
            async with httpx.AsyncClient(timeout=GEOCODING_TIMEOUT_SECONDS) as client:
                response = await client.get(
                    url, params={**params, "format": "json"}, headers=headers
                )
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            raise UpstreamDegradedException(f"Geocoding timeout for {path}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamDegradedException(
                f"Geocoding HTTP {e.response.status_code} for {path}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamDegradedException(f"Geocoding error for {path}: {e}") from e

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    async def search(query: str) -> List[schemas.LocationResult]:
        """
        Search places matching ``query`` within the configured country.

        Args:
            query: Free-text place name

        Returns:
            Up to five matches; empty when nothing matches or the lookup fails
        """
        query = query.strip()
        if not query:
            return []
        try:
            data = await GeocodingService._get(
                "search",
                {
                    "q": f"{query} {settings.GEOCODING_COUNTRY}".strip(),
                    "limit": SEARCH_RESULT_LIMIT,
                },
            )
        except UpstreamDegradedException as e:
            logger.warning(f"Location search failed for '{query}': {e.message}")
            return []

        results: List[schemas.LocationResult] = []
        for item in data if isinstance(data, list) else []:
            lat = GeocodingService._to_float(item.get("lat"))
            lon = GeocodingService._to_float(item.get("lon"))
            if lat is None or lon is None or not item.get("display_name"):
                continue
            results.append(
                schemas.LocationResult(
                    display_name=item["display_name"],
                    lat=lat,
                    lon=lon,
                    type=item.get("type"),
                )
            )
        return results

    @staticmethod
    async def reverse(lat: float, lon: float) -> Optional[schemas.ReverseLocation]:
        """
        Describe the place at the given coordinates.

        Returns:
            The place, or None when nothing is there or the lookup fails
        """
        try:
            data = await GeocodingService._get("reverse", {"lat": lat, "lon": lon})
        except UpstreamDegradedException as e:
            logger.warning(f"Reverse geocode failed for ({lat}, {lon}): {e.message}")
            return None

        if not isinstance(data, dict) or not data.get("display_name"):
            return None
        return schemas.ReverseLocation(
            display_name=data["display_name"],
            lat=GeocodingService._to_float(data.get("lat")),
            lon=GeocodingService._to_float(data.get("lon")),
            address=data.get("address") or {},
        )
