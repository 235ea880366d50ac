"""
Resolve a time block to a primary venue plus ranked alternatives.

Search runs as an ordered list of tiers, most specific first. Each tier's
results pass through the city and category filters; the next tier only runs
when the filtered set is empty. The surviving candidates then go through the
opening-hours filter, rating-weighted selection and weather substitution.
"""

import logging
import random
from typing import Callable, Protocol

from dayplanner.core.categories import TYPE_FILTERS, is_outdoor_types
from dayplanner.core.cities import CityConfig, address_in_city
from dayplanner.core.errors import ExternalServiceError, VenueNotFound
from dayplanner.core.geo_utils import distance_between
from dayplanner.core.llm_provider import LLMProvider
from dayplanner.core.opening_hours_utils import is_open_at
from dayplanner.core.schemas import PlaceCandidate, ResolvedVenue, TimeBlock, VenueResult
from dayplanner.core.time_normalizer import resolve_timezone
from dayplanner.core.weather_service import WeatherService

logger = logging.getLogger(__name__)

SUB_AREA_RADIUS_M = 5000
CITY_RADIUS_M = 25000
MISSING_RATING_WEIGHT = 3.5
MAX_ALTERNATIVES = 3
BACKFILL_LIMIT = 4

TYPE_DESCRIPTIONS = {
    "bakery": "Great for pastries",
    "pizza_restaurant": "Pizza specialist",
    "italian_restaurant": "Italian cuisine",
    "french_restaurant": "French cuisine",
    "japanese_restaurant": "Japanese cuisine",
    "chinese_restaurant": "Chinese cuisine",
    "mexican_restaurant": "Mexican cuisine",
    "thai_restaurant": "Thai cuisine",
    "seafood_restaurant": "Seafood specialist",
    "steakhouse": "Steak specialist",
    "vegetarian_restaurant": "Vegetarian options",
    "rooftop_bar": "Rooftop views",
    "sports_bar": "Sports atmosphere",
    "cocktail_bar": "Craft cocktails",
    "wine_bar": "Wine selection",
    "coffee_shop": "Coffee specialist",
    "fast_food_restaurant": "Quick service",
    "art_gallery": "Art gallery",
    "museum": "Museum",
    "book_store": "Bookshop",
}

FALLBACK_REASONS = ["Popular alternative", "Highly recommended", "Worth considering"]


class PlaceSearch(Protocol):
    def search(
        self, query: str, location_bias: tuple[float, float] | None = None, radius: int | None = None
    ) -> list[PlaceCandidate]: ...

    def get_details(self, place_id: str) -> PlaceCandidate: ...


class QueryEnhancer:
    """Rewrites a venue search string with the LLM, falling back to the original."""

    def __init__(self, provider: LLMProvider, temperature: float = 0.3):
        self.provider = provider
        self.temperature = temperature

    def enhance(self, query: str, block: TimeBlock, city: CityConfig) -> str:
        messages = [
            {
                "role": "system",
                "content": (
                    "You rewrite venue searches for the Google Places text search API. "
                    f"The city is {city.name}. Keep the neighborhood and the kind of venue, "
                    "add at most three words that sharpen the search, and return ONLY the "
                    "rewritten search string on a single line."
                ),
            },
            {
                "role": "user",
                "content": f"Activity: {block.activity}\nSearch: {query}",
            },
        ]
        try:
            response = self.provider.chat(messages=messages, temperature=self.temperature)
        except Exception as e:
            logger.warning(f"[VenueResolver] Query enhancement failed: {e}")
            return query

        lines = (response or "").strip().splitlines()
        enhanced = lines[0].strip().strip("\"'`") if lines else ""
        if not enhanced or len(enhanced) > 200:
            return query
        logger.debug(f"[VenueResolver] Enhanced '{query}' → '{enhanced}'")
        return enhanced


def generate_alternative_reason(
    alternative: PlaceCandidate, primary: PlaceCandidate, index: int
) -> str:
    """Short human-readable reason for suggesting an alternative."""
    alt_rating = alternative.rating or 0
    primary_rating = primary.rating or 0
    if alt_rating > primary_rating:
        return f"Higher rated (+{alt_rating - primary_rating:.1f} stars)"

    unique_types = [t for t in alternative.types if t not in primary.types]
    for vtype in unique_types:
        if vtype in TYPE_DESCRIPTIONS:
            return TYPE_DESCRIPTIONS[vtype]

    if alternative.price_level and primary.price_level:
        if alternative.price_level < primary.price_level:
            return "More budget-friendly"
        if alternative.price_level > primary.price_level:
            return "More upscale option"

    return FALLBACK_REASONS[index] if index < len(FALLBACK_REASONS) else "Alternative option"


def filter_by_city(candidates: list[PlaceCandidate], city: CityConfig) -> list[PlaceCandidate]:
    return [c for c in candidates if c.address and address_in_city(c.address, city)]


def filter_by_category(candidates: list[PlaceCandidate], block: TimeBlock) -> list[PlaceCandidate]:
    """Drop disqualifying types and require a confirming one; no-op if that empties the set."""
    rules = TYPE_FILTERS.get(block.category)
    if not rules or not candidates:
        return candidates
    excluded, required = rules
    kept = [
        c
        for c in candidates
        if not (set(c.types) & excluded) and (set(c.types) & required)
    ]
    if not kept:
        logger.info(
            f"[VenueResolver] Category filter for {block.category.value} removed every "
            f"candidate, keeping unfiltered results"
        )
        return candidates
    return kept


def weighted_choice(candidates: list[PlaceCandidate], rng: random.Random) -> PlaceCandidate:
    """Pick a candidate with probability proportional to rating squared."""
    weights = [(c.rating if c.rating is not None else MISSING_RATING_WEIGHT) ** 2 for c in candidates]
    total = sum(weights)
    draw = rng.random() * total
    cumulative = 0.0
    for candidate, weight in zip(candidates, weights):
        cumulative += weight
        if draw < cumulative:
            return candidate
    return candidates[-1]


class VenueResolver:
    def __init__(
        self,
        places: PlaceSearch | None,
        weather: WeatherService | None = None,
        enhancer: QueryEnhancer | None = None,
        rng: random.Random | None = None,
    ):
        self.places = places
        self.weather = weather
        self.enhancer = enhancer
        self.rng = rng or random.Random()
        self.tiers: list[tuple[str, Callable[[TimeBlock, CityConfig], list[PlaceCandidate]]]] = [
            ("targeted", self._targeted_tier),
            ("broadened", self._broadened_tier),
        ]

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    @staticmethod
    def location_bias(block: TimeBlock, city: CityConfig) -> tuple[tuple[float, float], int]:
        location = block.location
        if location.is_sub_area and location.has_coordinates:
            return (location.lat, location.lng), SUB_AREA_RADIUS_M
        return (city.default_lat, city.default_lng), CITY_RADIUS_M

    @staticmethod
    def targeted_query(block: TimeBlock, city: CityConfig) -> str:
        parts = [block.venue_preference or block.search_term, *block.keywords]
        query = " ".join(p.strip() for p in parts if p and p.strip())
        return f"{query} in {block.location.name} {city.name}"

    def _search(self, query: str, block: TimeBlock, city: CityConfig) -> list[PlaceCandidate]:
        bias, radius = self.location_bias(block, city)
        logger.info(f"[VenueResolver] Searching '{query}' (radius {radius}m)")
        return self.places.search(query, location_bias=bias, radius=radius)

    def _targeted_tier(self, block: TimeBlock, city: CityConfig) -> list[PlaceCandidate]:
        query = self.targeted_query(block, city)
        if self.enhancer is not None:
            query = self.enhancer.enhance(query, block, city)
        return self._search(query, block, city)

    def _broadened_tier(self, block: TimeBlock, city: CityConfig) -> list[PlaceCandidate]:
        return self._search(f"{block.search_term} {city.name}", block, city)

    def run_tiers(self, block: TimeBlock, city: CityConfig) -> list[PlaceCandidate]:
        """Run tiers in order until one yields candidates after filtering."""
        if self.places is None:
            logger.warning("[VenueResolver] No place search configured")
            return []

        for name, tier in self.tiers:
            try:
                results = tier(block, city)
            except ExternalServiceError as e:
                logger.warning(f"[VenueResolver] Tier '{name}' failed for {block.activity}: {e}")
                continue

            candidates = filter_by_category(filter_by_city(results, city), block)
            logger.info(
                f"[VenueResolver] Tier '{name}' for {block.activity}: "
                f"{len(results)} results, {len(candidates)} after filters"
            )
            if candidates:
                return candidates
        return []

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    def backfill_ratings(self, candidates: list[PlaceCandidate]) -> list[PlaceCandidate]:
        enriched: list[PlaceCandidate] = []
        for i, candidate in enumerate(candidates):
            if i < BACKFILL_LIMIT and candidate.rating is None and candidate.place_id:
                try:
                    details = self.places.get_details(candidate.place_id)
                    candidate = candidate.model_copy(
                        update={
                            "rating": details.rating,
                            "price_level": candidate.price_level or details.price_level,
                            "opening_hours": candidate.opening_hours or details.opening_hours,
                        }
                    )
                except ExternalServiceError as e:
                    logger.debug(f"[VenueResolver] Details backfill failed for {candidate.name}: {e}")
            enriched.append(candidate)
        return enriched

    def filter_open(
        self, candidates: list[PlaceCandidate], block: TimeBlock, city: CityConfig, warnings: list[str]
    ) -> list[PlaceCandidate]:
        tz = resolve_timezone(city.timezone)
        instant = block.time.timestamp
        open_now = [c for c in candidates if is_open_at(c.opening_hours, instant, tz) is not False]
        if not open_now:
            warnings.append(
                f"Every option for {block.activity} appears closed at {block.time.display}; "
                "showing them anyway"
            )
            return candidates
        return open_now

    def _weather_swap(
        self,
        primary: PlaceCandidate,
        pool: list[PlaceCandidate],
        block: TimeBlock,
        warnings: list[str],
    ) -> tuple[PlaceCandidate, str | None]:
        if self.weather is None or not is_outdoor_types(primary.types):
            return primary, None
        if self.weather.is_weather_suitable(primary.lat, primary.lng, block.time.timestamp):
            return primary, None

        def best_indoor(options: list[PlaceCandidate]) -> PlaceCandidate | None:
            indoor = [c for c in options if c.place_id != primary.place_id and not is_outdoor_types(c.types)]
            if not indoor:
                return None
            return max(indoor, key=lambda c: c.rating or 0)

        replacement = best_indoor(pool)
        if replacement is None:
            warnings.append(f"Weather may not suit {primary.name} at {block.time.display}")
            return primary, "Weather may not suit outdoor plans"

        logger.info(f"[VenueResolver] Weather swap: {primary.name} → {replacement.name}")
        return replacement, f"Indoor pick instead of {primary.name} due to weather"

    def _to_venue(self, candidate: PlaceCandidate, **extra) -> ResolvedVenue:
        return ResolvedVenue(
            place_id=candidate.place_id,
            name=candidate.name,
            address=candidate.address,
            lat=candidate.lat,
            lng=candidate.lng,
            rating=candidate.rating,
            price_level=candidate.price_level,
            types=candidate.types,
            **extra,
        )

    def resolve(self, block: TimeBlock, city: CityConfig) -> VenueResult:
        """
        Resolve one block.

        Raises:
            VenueNotFound: every tier came back empty
        """
        warnings: list[str] = []
        candidates = self.run_tiers(block, city)
        if not candidates:
            raise VenueNotFound(block.activity)

        candidates = self.backfill_ratings(candidates)
        candidates = self.filter_open(candidates, block, city, warnings)

        qualifying = [c for c in candidates if c.rating is not None and c.rating >= block.min_rating]
        pool = qualifying or candidates

        primary = weighted_choice(pool, self.rng)
        primary, weather_note = self._weather_swap(primary, pool, block, warnings)

        others = [c for c in pool if c.place_id != primary.place_id]
        others.sort(key=lambda c: c.rating or 0, reverse=True)
        alternatives = []
        for i, alt in enumerate(others[:MAX_ALTERNATIVES]):
            distance = distance_between(alt, primary)
            alternatives.append(
                self._to_venue(
                    alt,
                    is_primary=False,
                    reason=generate_alternative_reason(alt, primary, i),
                    distance_from_primary_km=round(distance, 2) if distance is not None else None,
                )
            )

        venue = self._to_venue(
            primary,
            is_primary=True,
            activity=block.activity,
            category=block.category,
            scheduled_time=block.time.clock,
            display_time=block.time.display,
            weather_note=weather_note,
            alternatives=alternatives,
        )
        logger.info(f"[VenueResolver] {block.activity} → {venue.name} ({len(alternatives)} alternatives)")
        return VenueResult(primary=venue, alternatives=alternatives, warnings=warnings)
