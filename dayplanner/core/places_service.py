"""
Google Places API integration: text search, place details, geocoding and
distance-matrix travel times.
"""

import logging
from typing import Any

import requests

from dayplanner.core.cities import CityConfig
from dayplanner.core.errors import (
    ExternalServiceTimeout,
    GeocodeServiceError,
    PlacesServiceError,
)
from dayplanner.core.geo_utils import haversine_distance
from dayplanner.core.schemas import GeocodeResult, PlaceCandidate

logger = logging.getLogger(__name__)

MAPS_API_BASE = "https://maps.googleapis.com/maps/api"
PLACES_API_BASE = f"{MAPS_API_BASE}/place"
GEOCODE_URL = f"{MAPS_API_BASE}/geocode/json"
DISTANCE_MATRIX_URL = f"{MAPS_API_BASE}/distancematrix/json"

REQUEST_TIMEOUT = 10


def place_from_result(place: dict[str, Any], place_id: str | None = None) -> PlaceCandidate:
    """Map a Places API result (search or details) to a PlaceCandidate."""
    lat = None
    lng = None
    geometry = place.get("geometry")
    if geometry and geometry.get("location"):
        location = geometry["location"]
        lat = location.get("lat")
        lng = location.get("lng")

    opening = place.get("opening_hours")
    return PlaceCandidate(
        place_id=place_id or place.get("place_id", ""),
        name=place.get("name", ""),
        address=place.get("formatted_address") or place.get("vicinity") or "",
        lat=lat,
        lng=lng,
        rating=place.get("rating"),
        price_level=place.get("price_level"),
        types=place.get("types", []),
        opening_hours=opening if isinstance(opening, dict) else None,
    )


class PlacesService:
    """Service for interacting with Google Places API."""

    def __init__(self, api_key: str, session: requests.Session | None = None):
        if not api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY not found in environment variables")
        self.api_key = api_key
        self.session = session or requests.Session()

    def _get(self, url: str, params: dict[str, Any], error_cls=PlacesServiceError) -> dict[str, Any]:
        params = {**params, "key": self.api_key}
        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.Timeout as e:
            raise ExternalServiceTimeout(f"Google Maps request timed out: {url}") from e
        except (requests.RequestException, ValueError) as e:
            raise error_cls(f"Google Maps request failed: {e}") from e

    def search(
        self,
        query: str,
        location_bias: tuple[float, float] | None = None,
        radius: int | None = None,
    ) -> list[PlaceCandidate]:
        """
        Search for places using Text Search API.

        Args:
            query: Search query (e.g., "cafe in SoHo New York City")
            location_bias: Optional (lat, lng) to bias results toward
            radius: Bias radius in meters

        Returns:
            List of PlaceCandidate, empty on ZERO_RESULTS

        Raises:
            ExternalServiceTimeout: the request timed out
            PlacesServiceError: transport failure or a non-OK API status
        """
        params: dict[str, Any] = {"query": query}
        if location_bias is not None:
            params["location"] = f"{location_bias[0]},{location_bias[1]}"
            if radius:
                params["radius"] = radius

        data = self._get(f"{PLACES_API_BASE}/textsearch/json", params)
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise PlacesServiceError(f"Places search failed: {status}")

        results = [place_from_result(p) for p in data.get("results", [])]
        logger.debug(f"[PlacesService] '{query}' → {len(results)} results")
        return results

    def get_details(self, place_id: str) -> PlaceCandidate:
        """
        Get detailed information about a specific place.

        Used to backfill rating and opening hours missing from search results.
        """
        params = {
            "place_id": place_id,
            "fields": (
                "name,formatted_address,rating,price_level,"
                "geometry,types,opening_hours"
            ),
        }
        data = self._get(f"{PLACES_API_BASE}/details/json", params)
        if data.get("status") != "OK":
            raise PlacesServiceError(f"Place details failed: {data.get('status')}")
        return place_from_result(data.get("result", {}), place_id=place_id)

    def resolve(self, name: str, city: CityConfig) -> GeocodeResult | None:
        """
        Geocode a place name within a city.

        Returns:
            GeocodeResult when the top hit lies within the city's radius,
            otherwise None
        """
        data = self._get(
            GEOCODE_URL,
            {"address": f"{name}, {city.name}"},
            error_cls=GeocodeServiceError,
        )
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise GeocodeServiceError(f"Geocoding failed for {name}: {status}")
        if not data.get("results"):
            return None

        top = data["results"][0]
        location = top["geometry"]["location"]
        lat, lng = location["lat"], location["lng"]
        if haversine_distance(lat, lng, city.default_lat, city.default_lng) > city.radius_km:
            logger.info(f"[PlacesService] Geocode for '{name}' falls outside {city.name}")
            return None

        components = top.get("address_components") or []
        canonical = components[0].get("long_name") if components else name
        return GeocodeResult(
            canonical_name=canonical or name,
            lat=lat,
            lng=lng,
            address=top.get("formatted_address", ""),
        )

    def travel_minutes(
        self, origin: tuple[float, float], destination: tuple[float, float]
    ) -> int:
        """Travel time in minutes between two points from the Distance Matrix API."""
        data = self._get(
            DISTANCE_MATRIX_URL,
            {
                "origins": f"{origin[0]},{origin[1]}",
                "destinations": f"{destination[0]},{destination[1]}",
                "mode": "transit",
            },
        )
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError) as e:
            raise PlacesServiceError("Distance matrix returned no elements") from e
        if element.get("status") != "OK":
            raise PlacesServiceError(f"Distance matrix failed: {element.get('status')}")
        return max(1, round(element["duration"]["value"] / 60))
