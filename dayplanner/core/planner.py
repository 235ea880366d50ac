"""
Planning pipeline: interpret → deduplicate → resolve venues → stitch → assemble.
"""

import asyncio
import logging
import random
from functools import lru_cache

from dayplanner.core.activity_deduplicator import ActivityDeduplicator
from dayplanner.core.cities import CityConfig, get_city
from dayplanner.core.errors import PlanningFailed, VenueNotFound
from dayplanner.core.itinerary_assembler import ItineraryAssembler
from dayplanner.core.llm_provider import LLMProvider
from dayplanner.core.location_resolver import LocationResolver
from dayplanner.core.places_service import PlacesService
from dayplanner.core.query_interpreter import AIQueryInterpreter, QueryInterpreter
from dayplanner.core.repository import build_repo
from dayplanner.core.schemas import (
    Itinerary,
    PlanRequest,
    TimeBlock,
    UnresolvedBlock,
    VenueResult,
)
from dayplanner.core.settings import Settings, get_settings
from dayplanner.core.travel_stitcher import TravelStitcher
from dayplanner.core.venue_resolver import QueryEnhancer, VenueResolver
from dayplanner.core.weather_service import OpenWeatherClient, WeatherCache, WeatherService

logger = logging.getLogger(__name__)


def unresolved_from(block: TimeBlock) -> UnresolvedBlock:
    return UnresolvedBlock(
        activity=block.activity,
        category=block.category,
        location=block.location.name,
        display_time=block.time.display,
        message=VenueNotFound(block.activity).message,
    )


class PlanningPipeline:
    def __init__(
        self,
        interpreter: QueryInterpreter,
        deduplicator: ActivityDeduplicator,
        venue_resolver: VenueResolver,
        stitcher: TravelStitcher,
        assembler: ItineraryAssembler,
        venue_timeout_seconds: float = 12,
        request_timeout_seconds: float = 45,
    ):
        self.interpreter = interpreter
        self.deduplicator = deduplicator
        self.venue_resolver = venue_resolver
        self.stitcher = stitcher
        self.assembler = assembler
        self.venue_timeout_seconds = venue_timeout_seconds
        self.request_timeout_seconds = request_timeout_seconds

    @property
    def storage(self):
        return self.assembler.storage

    def _remaining(self, started: float) -> float:
        elapsed = asyncio.get_running_loop().time() - started
        return max(self.request_timeout_seconds - elapsed, 0)

    async def _resolve_block(
        self, block: TimeBlock, city: CityConfig
    ) -> VenueResult | UnresolvedBlock:
        """Resolve one block in a worker thread; failures become an unresolved marker."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.venue_resolver.resolve, block, city),
                timeout=self.venue_timeout_seconds,
            )
        except VenueNotFound:
            logger.info(f"[Planner] No venue for '{block.activity}' at {block.location.name}")
        except asyncio.TimeoutError:
            logger.warning(
                f"[Planner] Venue search for '{block.activity}' timed out after "
                f"{self.venue_timeout_seconds}s"
            )
        except Exception as e:
            logger.exception(f"[Planner] Venue search for '{block.activity}' failed: {e}")
        return unresolved_from(block)

    async def plan(self, request: PlanRequest) -> Itinerary:
        """
        Plan a day for the request.

        Blocks resolve concurrently, each under its own timeout. When the
        request deadline passes, outstanding blocks are cancelled and recorded
        as unresolved; the itinerary is assembled from whatever resolved.

        Raises:
            UnknownCityError: the city is not supported
            PlanningFailed: no time block could be produced before the deadline
            StorageError: the itinerary could not be saved
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        city = get_city(request.city)

        interpretation = await self.interpreter.interpret(
            request.query, request.date, request.start_time, city
        )
        logger.info(
            f"[Planner] {interpretation.strategy} interpretation: "
            f"{len(interpretation.intents)} intents for '{request.query}'"
        )

        # Location resolution can block on the geocoder
        try:
            dedup = await asyncio.wait_for(
                asyncio.to_thread(self.deduplicator.deduplicate, interpretation.intents, request, city),
                timeout=self._remaining(started),
            )
        except asyncio.TimeoutError as e:
            logger.warning("[Planner] Request deadline reached while resolving locations")
            raise PlanningFailed("Ran out of time resolving locations") from e
        if not dedup.blocks:
            raise PlanningFailed("Could not derive any activity from the request")
        warnings = list(dedup.warnings)
        for block in dedup.blocks:
            logger.info(
                f"[Planner] Block {block.time.clock} {block.category.value} "
                f"@ {block.location.name}: {block.activity}"
            )

        tasks = [asyncio.create_task(self._resolve_block(b, city)) for b in dedup.blocks]
        done, pending = await asyncio.wait(tasks, timeout=self._remaining(started))
        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"[Planner] Request deadline reached, {len(pending)} blocks cancelled")

        venues = []
        unresolved = []
        for block, task in zip(dedup.blocks, tasks):
            if task not in done:
                unresolved.append(unresolved_from(block))
                warnings.append(f"Ran out of time looking for {block.activity}")
                continue
            outcome = task.result()
            if isinstance(outcome, UnresolvedBlock):
                unresolved.append(outcome)
            else:
                venues.append(outcome.primary)
                warnings.extend(outcome.warnings)

        segments = await asyncio.to_thread(self.stitcher.stitch, venues)
        return await asyncio.to_thread(
            self.assembler.assemble, request, city, venues, unresolved, segments, warnings
        )


def build_pipeline(settings: Settings) -> PlanningPipeline:
    """Wire the pipeline from settings; missing keys disable capabilities."""
    places = PlacesService(settings.google_maps_api_key) if settings.google_maps_api_key else None
    if places is None:
        logger.warning("[Planner] GOOGLE_MAPS_API_KEY not set, venue search disabled")

    llm = None
    if settings.ai_processing_enabled:
        try:
            llm = LLMProvider(model=settings.aisuite_model)
        except RuntimeError as e:
            logger.warning(f"[Planner] AI disabled: {e}")

    weather_client = (
        OpenWeatherClient(settings.weather_api_key) if settings.weather_api_key else None
    )
    weather = WeatherService(weather_client, WeatherCache(ttl_seconds=settings.weather_cache_ttl_seconds))

    return PlanningPipeline(
        interpreter=QueryInterpreter(
            ai=AIQueryInterpreter(llm) if llm else None,
            ai_timeout_seconds=settings.ai_timeout_seconds,
        ),
        deduplicator=ActivityDeduplicator(LocationResolver(places)),
        venue_resolver=VenueResolver(
            places,
            weather=weather,
            enhancer=QueryEnhancer(llm) if llm else None,
            rng=random.Random(),
        ),
        stitcher=TravelStitcher(places.travel_minutes if places else None),
        assembler=ItineraryAssembler(build_repo(settings)),
        venue_timeout_seconds=settings.venue_timeout_seconds,
        request_timeout_seconds=settings.request_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_pipeline() -> PlanningPipeline:
    return build_pipeline(get_settings())
