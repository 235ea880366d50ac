import json
import random
from datetime import date

import pytest

from dayplanner.core.activity_deduplicator import ActivityDeduplicator
from dayplanner.core.cities import get_city
from dayplanner.core.itinerary_assembler import ItineraryAssembler
from dayplanner.core.location_resolver import LocationResolver
from dayplanner.core.planner import PlanningPipeline
from dayplanner.core.query_interpreter import AIQueryInterpreter, QueryInterpreter
from dayplanner.core.repository import InMemoryRepo
from dayplanner.core.schemas import PlaceCandidate
from dayplanner.core.travel_stitcher import TravelStitcher
from dayplanner.core.venue_resolver import VenueResolver

PLAN_DATE = "2025-06-14"


def place(
    place_id,
    name,
    rating=4.5,
    types=("restaurant", "food"),
    address="123 Broadway, New York, NY 10012, USA",
    lat=40.7231,
    lng=-74.0030,
    price_level=2,
    opening_hours=None,
):
    return PlaceCandidate(
        place_id=place_id,
        name=name,
        address=address,
        lat=lat,
        lng=lng,
        rating=rating,
        price_level=price_level,
        types=list(types),
        opening_hours=opening_hours,
    )


class FakePlaces:
    """Returns canned results for the first keyword found in the query."""

    def __init__(self, results=None, details=None, errors=None):
        self.results = results or {}
        self.details = details or {}
        self.errors = errors or {}
        self.queries = []
        self.detail_calls = []

    def search(self, query, location_bias=None, radius=None):
        self.queries.append((query, location_bias, radius))
        lowered = query.lower()
        for keyword, error in self.errors.items():
            if keyword in lowered:
                raise error
        for keyword, places in self.results.items():
            if keyword in lowered:
                return list(places)
        return []

    def get_details(self, place_id):
        self.detail_calls.append(place_id)
        return self.details[place_id]


class FakeLLM:
    def __init__(self, response="", error=None):
        self.response = response
        self.error = error
        self.calls = []

    def chat(self, messages, temperature=1.0):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return self.response


class FirstPick(random.Random):
    """Random source that always draws the first weighted candidate."""

    def random(self):
        return 0.0


def scenario_llm_response():
    return json.dumps(
        {
            "fixedTimeEntries": [
                {"time": "10:00", "activity": "coffee", "location": "Soho", "keywords": []},
                {"time": "13:00", "activity": "lunch", "location": "Chinatown", "keywords": []},
            ],
            "flexibleTimeEntries": [],
        }
    )


def make_pipeline(places=None, llm=None, weather=None, rng=None, geocoder=None, **kwargs):
    return PlanningPipeline(
        interpreter=QueryInterpreter(ai=AIQueryInterpreter(llm) if llm else None),
        deduplicator=ActivityDeduplicator(LocationResolver(geocoder)),
        venue_resolver=VenueResolver(places, weather=weather, rng=rng or random.Random(7)),
        stitcher=TravelStitcher(),
        assembler=ItineraryAssembler(InMemoryRepo()),
        **kwargs,
    )


@pytest.fixture
def nyc():
    return get_city("nyc")


@pytest.fixture
def plan_date():
    return date.fromisoformat(PLAN_DATE)


@pytest.fixture
def soho_cafes():
    return [
        place("c1", "Sunrise Coffee", 4.6, ("cafe", "food")),
        place("c2", "Bean There", 4.3, ("cafe", "bakery", "food"), lat=40.7240, lng=-74.0010),
        place("c3", "Corner Espresso", 4.1, ("cafe", "food"), lat=40.7225, lng=-74.0050),
    ]


@pytest.fixture
def chinatown_restaurants():
    return [
        place(
            "r1",
            "Golden Dumpling House",
            4.7,
            ("restaurant", "chinese_restaurant", "food"),
            address="20 Mott St, New York, NY 10013, USA",
            lat=40.7150,
            lng=-73.9980,
        ),
        place(
            "r2",
            "Noodle Corner",
            4.4,
            ("restaurant", "food"),
            address="48 Bayard St, New York, NY 10013, USA",
            lat=40.7155,
            lng=-73.9975,
        ),
    ]
