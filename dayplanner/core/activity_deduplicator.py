"""
Merge raw intents into a canonical, time-sorted list of time blocks.
"""

import logging

from pydantic import BaseModel, Field

from dayplanner.core.categories import GENERIC_ACTIVITY, SEARCH_TERMS, category_for
from dayplanner.core.cities import CityConfig
from dayplanner.core.errors import LocationUnresolved
from dayplanner.core.location_resolver import LocationResolver
from dayplanner.core.schemas import (
    ActivityCategory,
    LocationMatch,
    PlanRequest,
    RawIntent,
    TimeBlock,
)
from dayplanner.core.time_normalizer import normalize_time, parse_reference_date

logger = logging.getLogger(__name__)

NEARBY_WORDS = {"nearby", "near by", "close by", "around here", "same area", "near there"}


class DeduplicationResult(BaseModel):
    blocks: list[TimeBlock]
    warnings: list[str] = Field(default_factory=list)


class ActivityDeduplicator:
    def __init__(self, location_resolver: LocationResolver):
        self.location_resolver = location_resolver

    def _resolve_location(
        self,
        phrase: str | None,
        previous: LocationMatch | None,
        start: LocationMatch | None,
        city: CityConfig,
        strict: bool,
        warnings: list[str],
    ) -> LocationMatch:
        text = (phrase or "").strip()
        if not text or text.lower() in NEARBY_WORDS:
            if previous is not None:
                return previous
            if start is not None:
                return start
            return self.location_resolver.default_location(city)

        try:
            return self.location_resolver.resolve(text, city, strict=strict)
        except LocationUnresolved as e:
            warnings.append(e.message)
            return LocationMatch(
                name=e.phrase,
                resolved=False,
                source="unresolved",
                suggestions=e.suggestions,
            )

    def deduplicate(
        self,
        intents: list[RawIntent],
        request: PlanRequest,
        city: CityConfig,
    ) -> DeduplicationResult:
        """
        Normalize, classify and merge intents.

        Fixed-time intents are processed before flexible ones and the first
        block for a (location, category) key wins. The result is sorted by
        timestamp, ties in processing order. An empty result becomes a single
        generic block at the start time and start location.
        """
        reference_date = parse_reference_date(request.date, city.timezone)
        warnings: list[str] = []

        start_location: LocationMatch | None = None
        if request.start_location:
            start_location = self._resolve_location(
                request.start_location, None, None, city, request.strict_locations, warnings
            )

        ordered = [i for i in intents if i.source == "fixed"] + [
            i for i in intents if i.source != "fixed"
        ]

        blocks: dict[str, TimeBlock] = {}
        previous: LocationMatch | None = None
        for intent in ordered:
            location = self._resolve_location(
                intent.location, previous, start_location, city, request.strict_locations, warnings
            )
            previous = location

            if intent.activity == GENERIC_ACTIVITY:
                category = ActivityCategory.GENERIC
            else:
                category = category_for(
                    " ".join(filter(None, [intent.activity, intent.venue_preference]))
                )
            block = TimeBlock(
                activity=intent.activity,
                location=location,
                time=normalize_time(intent.time or request.start_time, reference_date, city.timezone),
                category=category,
                search_term=SEARCH_TERMS[category],
                venue_preference=intent.venue_preference,
                keywords=intent.keywords,
                source=intent.source,
            )
            if block.key in blocks:
                logger.info(
                    f"[Deduplicator] Dropping duplicate {block.key} ({intent.source}) "
                    f"at {block.time.clock}"
                )
                continue
            blocks[block.key] = block

        # sorted() is stable, so ties keep insertion order
        result = sorted(blocks.values(), key=lambda b: b.time.timestamp)

        if not result:
            logger.info("[Deduplicator] No intents survived, synthesizing a generic block")
            location = start_location or self.location_resolver.default_location(city)
            result = [
                TimeBlock(
                    activity=GENERIC_ACTIVITY,
                    location=location,
                    time=normalize_time(request.start_time, reference_date, city.timezone),
                    category=ActivityCategory.GENERIC,
                    search_term=SEARCH_TERMS[ActivityCategory.GENERIC],
                )
            ]

        return DeduplicationResult(blocks=result, warnings=warnings)
