"""
Build the final itinerary record and persist it.
"""

import logging
from typing import Any, Protocol

from dayplanner.core.cities import CityConfig
from dayplanner.core.schemas import (
    Itinerary,
    PlanRequest,
    ResolvedVenue,
    TravelSegment,
    UnresolvedBlock,
)

logger = logging.getLogger(__name__)


class ItineraryStorage(Protocol):
    def create_itinerary(self, record: dict[str, Any]) -> str: ...

    def get_itinerary(self, itinerary_id: str) -> dict | None: ...


class ItineraryAssembler:
    def __init__(self, storage: ItineraryStorage):
        self.storage = storage

    def assemble(
        self,
        request: PlanRequest,
        city: CityConfig,
        venues: list[ResolvedVenue],
        unresolved: list[UnresolvedBlock],
        segments: list[TravelSegment],
        warnings: list[str],
    ) -> Itinerary:
        itinerary = Itinerary(
            query=request.query,
            city=city.slug,
            places=venues,
            travel_times=segments,
            unresolved=unresolved,
            warnings=warnings,
        )
        record = itinerary.model_dump(mode="json", by_alias=True, exclude={"id"})
        record["request"] = request.model_dump(mode="json", by_alias=True)
        itinerary_id = self.storage.create_itinerary(record)
        logger.info(
            f"[ItineraryAssembler] Saved {itinerary_id}: {len(venues)} venues, "
            f"{len(unresolved)} unresolved"
        )
        return itinerary.model_copy(update={"id": itinerary_id})
