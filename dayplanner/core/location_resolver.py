"""
Normalizes free-text place references against the city gazetteer, street
abbreviations and, failing those, an external geocoder.
"""

import difflib
import logging
import re
from typing import Protocol

from dayplanner.core.cities import Area, CityConfig
from dayplanner.core.errors import LocationUnresolved
from dayplanner.core.geo_utils import haversine_distance
from dayplanner.core.schemas import GeocodeResult, LocationMatch

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3


class Geocoder(Protocol):
    def resolve(self, name: str, city: CityConfig) -> GeocodeResult | None: ...


def _normalize(phrase: str) -> str:
    text = re.sub(r"[^\w\s&'-]", " ", phrase.strip().lower())
    return re.sub(r"\s+", " ", text).strip()


def _clean(phrase: str) -> str:
    text = _normalize(phrase)
    text = re.sub(r"^(?:the)\s+", "", text)
    text = re.sub(r"\s+(?:area|neighbou?rhood)$", "", text)
    return re.sub(r"\s+", " ", text).strip()


def _area_match(area: Area, source: str = "gazetteer") -> LocationMatch:
    return LocationMatch(
        name=area.name,
        lat=area.lat,
        lng=area.lng,
        resolved=True,
        source=source,
        is_sub_area=True,
    )


class LocationResolver:
    def __init__(self, geocoder: Geocoder | None = None):
        self.geocoder = geocoder

    def default_location(self, city: CityConfig) -> LocationMatch:
        area = city.find_area(city.default_area)
        return LocationMatch(
            name=area.name if area else city.name,
            lat=city.default_lat,
            lng=city.default_lng,
            resolved=True,
            source="default",
            is_sub_area=False,
        )

    def resolve(self, phrase: str | None, city: CityConfig, strict: bool = False) -> LocationMatch:
        """
        Resolve a location phrase for a city.

        Order: blank → city default, gazetteer name/alias, street abbreviation
        expansion, geocoder (only inside the city radius). When nothing
        matches the original phrase comes back unresolved with near-match
        suggestions, or LocationUnresolved is raised if strict.
        """
        if not phrase or not phrase.strip():
            return self.default_location(city)

        cleaned = _clean(phrase)

        match = self._match_gazetteer(_normalize(phrase), cleaned, city)
        if match:
            return match

        match = self._match_street(phrase, city)
        if match:
            return match

        match = self._geocode(phrase.strip(), city)
        if match:
            return match

        suggestions = self.suggest(cleaned, city)
        logger.info(f"[LocationResolver] Unresolved '{phrase}' in {city.slug}, suggestions={suggestions}")
        if strict:
            raise LocationUnresolved(phrase.strip(), suggestions)
        return LocationMatch(
            name=phrase.strip(),
            resolved=False,
            source="unresolved",
            suggestions=suggestions,
        )

    def _match_gazetteer(self, normalized: str, cleaned: str, city: CityConfig) -> LocationMatch | None:
        if not normalized:
            return None
        # Some aliases keep an article or suffix ("the village"), so the phrase as written goes first
        for phrase in (normalized, cleaned):
            for area in city.areas:
                names = [area.name.lower(), *(a.lower() for a in area.aliases)]
                if phrase in names:
                    return _area_match(area)

        # Whole-word containment, longest name wins ("lower east side" over "east")
        best: tuple[int, Area] | None = None
        for area in city.areas:
            for name in [area.name, *area.aliases]:
                name = name.lower()
                if re.search(rf"\b{re.escape(name)}\b", normalized):
                    if best is None or len(name) > best[0]:
                        best = (len(name), area)
        return _area_match(best[1]) if best else None

    def _match_street(self, phrase: str, city: CityConfig) -> LocationMatch | None:
        for pattern, expansion in city.street_patterns:
            if not re.search(rf"\b{pattern}\b", phrase, re.IGNORECASE):
                continue
            logger.debug(f"[LocationResolver] Street reference '{phrase}' → {expansion}")
            geocoded = self._geocode(expansion, city)
            if geocoded:
                return geocoded.model_copy(update={"name": expansion, "source": "street"})
            return LocationMatch(name=expansion, resolved=True, source="street", is_sub_area=False)
        return None

    def _geocode(self, phrase: str, city: CityConfig) -> LocationMatch | None:
        if self.geocoder is None:
            return None
        try:
            result = self.geocoder.resolve(phrase, city)
        except Exception as e:
            logger.warning(f"[LocationResolver] Geocoder failed for '{phrase}': {e}")
            return None
        if result is None:
            return None
        if haversine_distance(result.lat, result.lng, city.default_lat, city.default_lng) > city.radius_km:
            logger.info(f"[LocationResolver] Geocode for '{phrase}' is outside {city.name}")
            return None
        return LocationMatch(
            name=result.canonical_name,
            lat=result.lat,
            lng=result.lng,
            resolved=True,
            source="geocoder",
            is_sub_area=True,
        )

    def suggest(self, cleaned: str, city: CityConfig) -> list[str]:
        """Nearest gazetteer names by similarity ratio."""
        lookup: dict[str, str] = {}
        for area in city.areas:
            lookup.setdefault(area.name.lower(), area.name)
            for alias in area.aliases:
                lookup.setdefault(alias.lower(), area.name)

        matches = difflib.get_close_matches(cleaned, list(lookup), n=MAX_SUGGESTIONS * 2, cutoff=0.6)
        suggestions: list[str] = []
        for match in matches:
            name = lookup[match]
            if name not in suggestions:
                suggestions.append(name)
        return suggestions[:MAX_SUGGESTIONS]
