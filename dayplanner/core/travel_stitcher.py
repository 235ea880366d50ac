"""
Travel segments between consecutive venues.
"""

import logging
from typing import Callable

from dayplanner.core.schemas import ResolvedVenue, TravelSegment
from dayplanner.core.travel_time_utils import DEFAULT_TRAVEL_MINUTES, estimate_minutes_between

logger = logging.getLogger(__name__)

TravelEstimator = Callable[[tuple[float, float], tuple[float, float]], int]


class TravelStitcher:
    def __init__(self, estimator: TravelEstimator | None = None):
        self.estimator = estimator or estimate_minutes_between

    def segment(self, origin: ResolvedVenue, destination: ResolvedVenue) -> TravelSegment:
        if None in (origin.lat, origin.lng, destination.lat, destination.lng):
            logger.info(
                f"[TravelStitcher] Missing coordinates for {origin.name} → {destination.name}, "
                f"using {DEFAULT_TRAVEL_MINUTES} min"
            )
            return self._default(origin, destination)

        try:
            minutes = int(
                self.estimator((origin.lat, origin.lng), (destination.lat, destination.lng))
            )
        except Exception as e:
            logger.warning(
                f"[TravelStitcher] Estimate failed for {origin.name} → {destination.name}: {e}"
            )
            return self._default(origin, destination)

        return TravelSegment(
            from_name=origin.name,
            to_name=destination.name,
            duration_minutes=max(minutes, 1),
        )

    @staticmethod
    def _default(origin: ResolvedVenue, destination: ResolvedVenue) -> TravelSegment:
        return TravelSegment(
            from_name=origin.name,
            to_name=destination.name,
            duration_minutes=DEFAULT_TRAVEL_MINUTES,
            estimated=True,
        )

    def stitch(self, venues: list[ResolvedVenue]) -> list[TravelSegment]:
        """One segment per consecutive pair of venues."""
        return [self.segment(a, b) for a, b in zip(venues, venues[1:])]
