"""
Weather forecasts for venue scheduling, with a shared TTL cache.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Protocol

import requests

from dayplanner.core.categories import is_outdoor_types
from dayplanner.core.errors import ExternalServiceTimeout, WeatherServiceError
from dayplanner.core.schemas import ForecastPoint

logger = logging.getLogger(__name__)

OPENWEATHER_FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"

BAD_CONDITIONS = ("rain", "thunderstorm", "storm", "snow", "drizzle", "sleet")
MIN_SUITABLE_TEMP_C = 5.0
MAX_SUITABLE_TEMP_C = 30.0
# Largest gap between a visit and the forecast point used for it
MAX_FORECAST_GAP_SECONDS = 3 * 60 * 60


class ForecastProvider(Protocol):
    def forecast(self, lat: float, lng: float) -> list[ForecastPoint]: ...


def cache_key(lat: float, lng: float) -> str:
    """Coordinates rounded to two decimals, roughly 1 km."""
    return f"{round(lat, 2):.2f},{round(lng, 2):.2f}"


class WeatherCache:
    """Thread-safe forecast cache with a fixed TTL. Last write wins."""

    def __init__(self, ttl_seconds: float = 1800, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, list[ForecastPoint]]] = {}
        self._lock = threading.Lock()

    def get(self, lat: float, lng: float) -> list[ForecastPoint] | None:
        key = cache_key(lat, lng)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, points = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return points

    def set(self, lat: float, lng: float, points: list[ForecastPoint]) -> None:
        with self._lock:
            self._entries[cache_key(lat, lng)] = (self._clock(), points)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class OpenWeatherClient:
    """OpenWeatherMap 5 day / 3 hour forecast."""

    def __init__(self, api_key: str, session: requests.Session | None = None):
        if not api_key:
            raise ValueError("WEATHER_API_KEY not found in environment variables")
        self.api_key = api_key
        self.session = session or requests.Session()

    def forecast(self, lat: float, lng: float) -> list[ForecastPoint]:
        params = {"lat": lat, "lon": lng, "appid": self.api_key, "units": "metric"}
        try:
            response = self.session.get(OPENWEATHER_FORECAST_URL, params=params, timeout=10)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise ExternalServiceTimeout("Weather forecast request timed out") from e
        except (requests.RequestException, ValueError) as e:
            raise WeatherServiceError(f"Weather forecast request failed: {e}") from e

        points: list[ForecastPoint] = []
        for item in data.get("list", []):
            try:
                points.append(
                    ForecastPoint(
                        time=datetime.fromtimestamp(item["dt"], tz=timezone.utc),
                        condition=item["weather"][0]["main"],
                        temp_c=float(item["main"]["temp"]),
                    )
                )
            except (KeyError, IndexError, TypeError, ValueError):
                continue
        if not points:
            raise WeatherServiceError("Weather forecast response had no usable entries")
        return points


class WeatherService:
    def __init__(self, provider: ForecastProvider | None, cache: WeatherCache | None = None):
        self.provider = provider
        self.cache = cache if cache is not None else WeatherCache()

    def forecast(self, lat: float, lng: float) -> list[ForecastPoint]:
        """Forecast for a point, served from the cache within the TTL."""
        cached = self.cache.get(lat, lng)
        if cached is not None:
            logger.debug(f"[Weather] Using cached forecast for {cache_key(lat, lng)}")
            return cached
        if self.provider is None:
            raise WeatherServiceError("No weather provider configured")

        logger.info(f"[Weather] Fetching forecast for {cache_key(lat, lng)}")
        points = self.provider.forecast(lat, lng)
        self.cache.set(lat, lng, points)
        return points

    @staticmethod
    def is_venue_outdoor(types: list[str]) -> bool:
        return is_outdoor_types(types)

    @staticmethod
    def conditions_suitable(point: ForecastPoint) -> bool:
        condition = point.condition.lower()
        if any(bad in condition for bad in BAD_CONDITIONS):
            return False
        return MIN_SUITABLE_TEMP_C <= point.temp_c <= MAX_SUITABLE_TEMP_C

    def is_weather_suitable(self, lat: float | None, lng: float | None, at: datetime | None) -> bool:
        """
        Whether outdoor conditions are acceptable near the given instant.

        Any forecast failure counts as suitable, as does a visit outside the
        forecast window.
        """
        if lat is None or lng is None:
            return True
        try:
            points = self.forecast(lat, lng)
        except Exception as e:
            logger.warning(f"[Weather] Forecast unavailable, assuming suitable: {e}")
            return True
        if not points:
            return True

        if at is None:
            nearest = points[0]
        else:
            nearest = min(points, key=lambda p: abs((p.time - at).total_seconds()))
            if abs((nearest.time - at).total_seconds()) > MAX_FORECAST_GAP_SECONDS:
                logger.debug(f"[Weather] No forecast near {at.isoformat()}, assuming suitable")
                return True
        suitable = self.conditions_suitable(nearest)
        if not suitable:
            logger.info(
                f"[Weather] Unsuitable at {cache_key(lat, lng)}: "
                f"{nearest.condition}, {nearest.temp_c:.0f}°C"
            )
        return suitable
