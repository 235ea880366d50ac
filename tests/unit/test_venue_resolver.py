import random
from datetime import datetime, timezone

import pytest

from conftest import FakeLLM, FakePlaces, FirstPick, place
from dayplanner.core.errors import (
    ExternalServiceTimeout,
    PlacesServiceError,
    VenueNotFound,
    WeatherServiceError,
)
from dayplanner.core.location_resolver import LocationResolver
from dayplanner.core.schemas import ActivityCategory, ForecastPoint, TimeBlock
from dayplanner.core.time_normalizer import normalize_time
from dayplanner.core.venue_resolver import (
    CITY_RADIUS_M,
    SUB_AREA_RADIUS_M,
    QueryEnhancer,
    VenueResolver,
    filter_by_category,
    generate_alternative_reason,
    weighted_choice,
)
from dayplanner.core.weather_service import WeatherCache, WeatherService


def make_block(nyc, plan_date, category=ActivityCategory.CAFE, location="SoHo", clock="10am", **kwargs):
    resolver = LocationResolver()
    search_terms = {
        ActivityCategory.CAFE: "cafe",
        ActivityCategory.RESTAURANT: "restaurant",
        ActivityCategory.ATTRACTION: "tourist attraction",
        ActivityCategory.PARK: "park",
    }
    return TimeBlock(
        activity=kwargs.pop("activity", "coffee"),
        location=resolver.resolve(location, nyc),
        time=normalize_time(clock, plan_date, nyc.timezone),
        category=category,
        search_term=search_terms[category],
        **kwargs,
    )


class FakeForecast:
    def __init__(self, condition="Clear", temp_c=20.0, error=None):
        self.condition = condition
        self.temp_c = temp_c
        self.error = error
        self.calls = 0

    def forecast(self, lat, lng):
        self.calls += 1
        if self.error:
            raise self.error
        return [
            ForecastPoint(
                time=datetime(2025, 6, 14, 15, 0, tzinfo=timezone.utc),
                condition=self.condition,
                temp_c=self.temp_c,
            )
        ]


def test_targeted_tier_uses_sub_area_bias(nyc, plan_date, soho_cafes):
    places = FakePlaces({"cafe in soho": soho_cafes})
    result = VenueResolver(places, rng=random.Random(1)).resolve(make_block(nyc, plan_date), nyc)
    query, bias, radius = places.queries[0]
    assert query == "cafe in SoHo New York City"
    assert bias == (40.7231, -74.0030)
    assert radius == SUB_AREA_RADIUS_M
    assert result.primary.is_primary
    assert result.primary.scheduled_time == "10:00"
    assert len(places.queries) == 1


def test_unresolved_location_widens_to_city(nyc, plan_date, soho_cafes):
    places = FakePlaces({"cafe": soho_cafes})
    block = make_block(nyc, plan_date, location="Somewhere Odd")
    VenueResolver(places).resolve(block, nyc)
    _, bias, radius = places.queries[0]
    assert bias == (nyc.default_lat, nyc.default_lng)
    assert radius == CITY_RADIUS_M


def test_falls_back_to_broadened_tier(nyc, plan_date, soho_cafes):
    places = FakePlaces({"cafe new york": soho_cafes})
    result = VenueResolver(places).resolve(make_block(nyc, plan_date), nyc)
    assert [q for q, _, _ in places.queries] == [
        "cafe in SoHo New York City",
        "cafe New York City",
    ]
    assert result.primary.name in {c.name for c in soho_cafes}


def test_tier_error_counts_as_empty(nyc, plan_date, soho_cafes):
    places = FakePlaces(
        {"cafe new york": soho_cafes},
        errors={"in soho": ExternalServiceTimeout("slow")},
    )
    result = VenueResolver(places).resolve(make_block(nyc, plan_date), nyc)
    assert len(places.queries) == 2
    assert result.primary.name in {c.name for c in soho_cafes}


def test_all_tiers_empty_raises(nyc, plan_date):
    places = FakePlaces(errors={"cafe": PlacesServiceError("denied")})
    with pytest.raises(VenueNotFound) as exc:
        VenueResolver(places).resolve(make_block(nyc, plan_date), nyc)
    assert exc.value.message == "could not find a match for coffee"


def test_no_place_search_raises(nyc, plan_date):
    with pytest.raises(VenueNotFound):
        VenueResolver(None).resolve(make_block(nyc, plan_date), nyc)


def test_city_filter_drops_out_of_town(nyc, plan_date):
    jersey = place("j1", "Jersey Joe", 4.9, ("cafe",), address="1 Main St, Jersey City, NJ 07302, USA")
    local = place("n1", "Local Beans", 4.2, ("cafe",))
    places = FakePlaces({"cafe": [jersey, local]})
    result = VenueResolver(places).resolve(make_block(nyc, plan_date), nyc)
    assert result.primary.name == "Local Beans"
    assert result.alternatives == []


def test_category_filter_excludes_anti_patterns(nyc, plan_date):
    block = make_block(nyc, plan_date)
    gas = place("g1", "Fuel & Coffee", 4.8, ("gas_station", "cafe"))
    hotel = place("h1", "Hotel Lobby", 4.8, ("lodging",))
    cafe = place("c1", "Real Cafe", 4.1, ("cafe",))
    assert filter_by_category([gas, hotel, cafe], block) == [cafe]


def test_category_filter_skipped_when_it_empties(nyc, plan_date):
    block = make_block(nyc, plan_date)
    gas = place("g1", "Fuel & Coffee", 4.8, ("gas_station", "cafe"))
    assert filter_by_category([gas], block) == [gas]


def test_selection_respects_rating_threshold(nyc, plan_date):
    candidates = [
        place("a", "Great", 4.6, ("cafe",)),
        place("b", "Poor", 3.2, ("cafe",)),
        place("c", "Good", 4.1, ("cafe",)),
    ]
    block = make_block(nyc, plan_date)
    for seed in range(40):
        places = FakePlaces({"cafe": candidates})
        result = VenueResolver(places, rng=random.Random(seed)).resolve(block, nyc)
        assert result.primary.name in {"Great", "Good"}
        assert "Poor" not in {a.name for a in result.alternatives}


def test_selection_uses_all_when_none_qualify(nyc, plan_date):
    candidates = [place("a", "Meh", 3.5, ("cafe",)), place("b", "Worse", 3.0, ("cafe",))]
    result = VenueResolver(FakePlaces({"cafe": candidates})).resolve(make_block(nyc, plan_date), nyc)
    assert result.primary.name in {"Meh", "Worse"}
    assert len(result.alternatives) == 1


def test_weighted_choice_is_cumulative():
    candidates = [place("a", "A", 4.0), place("b", "B", 3.0)]
    # weights 16 and 9
    assert weighted_choice(candidates, FirstPick()).name == "A"

    class Late(random.Random):
        def random(self):
            return 0.99

    assert weighted_choice(candidates, Late()).name == "B"


def test_alternatives_ranked_and_capped(nyc, plan_date):
    candidates = [
        place(str(i), f"Cafe {i}", rating, ("cafe",), lat=40.72 + i * 0.001)
        for i, rating in enumerate([4.2, 4.9, 4.5, 4.4, 4.7])
    ]
    result = VenueResolver(FakePlaces({"cafe": candidates}), rng=FirstPick()).resolve(
        make_block(nyc, plan_date), nyc
    )
    assert result.primary.name == "Cafe 0"
    ratings = [a.rating for a in result.alternatives]
    assert ratings == [4.9, 4.7, 4.5]
    assert all(not a.is_primary for a in result.alternatives)
    assert all(a.reason for a in result.alternatives)
    assert all(a.distance_from_primary_km is not None for a in result.alternatives)
    assert result.primary.alternatives == result.alternatives


def test_rating_backfill(nyc, plan_date):
    unrated = place("u1", "Mystery Cafe", None, ("cafe",))
    places = FakePlaces(
        {"cafe": [unrated]},
        details={"u1": place("u1", "Mystery Cafe", 4.8, ("cafe",))},
    )
    result = VenueResolver(places).resolve(make_block(nyc, plan_date), nyc)
    assert places.detail_calls == ["u1"]
    assert result.primary.rating == 4.8


def test_closed_venues_dropped(nyc, plan_date):
    # Saturday 2025-06-14, block at 10:00 local
    closed = {"weekday_text": ["Saturday: 5:00 PM – 11:00 PM"]}
    open_ = {"weekday_text": ["Saturday: 8:00 AM – 6:00 PM"]}
    candidates = [
        place("x", "Night Owl", 4.9, ("cafe",), opening_hours=closed),
        place("y", "Early Bird", 4.2, ("cafe",), opening_hours=open_),
    ]
    result = VenueResolver(FakePlaces({"cafe": candidates})).resolve(make_block(nyc, plan_date), nyc)
    assert result.primary.name == "Early Bird"
    assert result.warnings == []


def test_all_closed_keeps_candidates_with_warning(nyc, plan_date):
    closed = {"weekday_text": ["Saturday: Closed"]}
    candidates = [place("x", "Shut", 4.5, ("cafe",), opening_hours=closed)]
    result = VenueResolver(FakePlaces({"cafe": candidates})).resolve(make_block(nyc, plan_date), nyc)
    assert result.primary.name == "Shut"
    assert len(result.warnings) == 1


def _outdoor_block(nyc, plan_date):
    return make_block(
        nyc,
        plan_date,
        category=ActivityCategory.ATTRACTION,
        location="Central Park",
        clock="11am",
        activity="sightseeing",
    )


def test_thunderstorm_swaps_to_indoor(nyc, plan_date):
    outdoor = place("p1", "Great Lawn", 4.8, ("park", "tourist_attraction"))
    indoor = place("m1", "City Museum", 4.5, ("museum", "tourist_attraction"))
    weather = WeatherService(FakeForecast("Thunderstorm"), WeatherCache())
    resolver = VenueResolver(FakePlaces({"tourist attraction": [outdoor, indoor]}), weather=weather, rng=FirstPick())
    result = resolver.resolve(_outdoor_block(nyc, plan_date), nyc)
    assert result.primary.name == "City Museum"
    assert result.primary.weather_note
    assert "Great Lawn" in {a.name for a in result.alternatives}


def test_thunderstorm_without_indoor_keeps_primary(nyc, plan_date):
    outdoor = place("p1", "Great Lawn", 4.8, ("park", "tourist_attraction"))
    other = place("p2", "Sheep Meadow", 4.6, ("park",))
    weather = WeatherService(FakeForecast("Thunderstorm"), WeatherCache())
    resolver = VenueResolver(FakePlaces({"tourist attraction": [outdoor, other]}), weather=weather, rng=FirstPick())
    result = resolver.resolve(_outdoor_block(nyc, plan_date), nyc)
    assert result.primary.name == "Great Lawn"
    assert result.warnings


def test_good_weather_keeps_outdoor(nyc, plan_date):
    outdoor = place("p1", "Great Lawn", 4.8, ("park", "tourist_attraction"))
    indoor = place("m1", "City Museum", 4.5, ("museum",))
    weather = WeatherService(FakeForecast("Clear", 22), WeatherCache())
    resolver = VenueResolver(FakePlaces({"tourist attraction": [outdoor, indoor]}), weather=weather, rng=FirstPick())
    assert resolver.resolve(_outdoor_block(nyc, plan_date), nyc).primary.name == "Great Lawn"


def test_weather_failure_counts_as_suitable(nyc, plan_date):
    outdoor = place("p1", "Great Lawn", 4.8, ("park", "tourist_attraction"))
    indoor = place("m1", "City Museum", 4.5, ("museum",))
    weather = WeatherService(FakeForecast(error=WeatherServiceError("down")), WeatherCache())
    resolver = VenueResolver(FakePlaces({"tourist attraction": [outdoor, indoor]}), weather=weather, rng=FirstPick())
    result = resolver.resolve(_outdoor_block(nyc, plan_date), nyc)
    assert result.primary.name == "Great Lawn"
    assert result.primary.weather_note is None


def test_alternative_reasons():
    primary = place("p", "Primary", 4.2, ("restaurant",), price_level=2)
    assert generate_alternative_reason(place("a", "A", 4.7), primary, 0) == "Higher rated (+0.5 stars)"
    assert (
        generate_alternative_reason(place("b", "B", 4.0, ("restaurant", "cocktail_bar")), primary, 0)
        == "Craft cocktails"
    )
    assert (
        generate_alternative_reason(place("c", "C", 4.0, ("restaurant",), price_level=1), primary, 0)
        == "More budget-friendly"
    )
    assert (
        generate_alternative_reason(place("d", "D", 4.0, ("restaurant",), price_level=4), primary, 0)
        == "More upscale option"
    )
    same = place("e", "E", 4.0, ("restaurant",), price_level=2)
    assert generate_alternative_reason(same, primary, 1) == "Highly recommended"
    assert generate_alternative_reason(same, primary, 5) == "Alternative option"


def test_query_enhancer_rewrites(nyc, plan_date):
    llm = FakeLLM('"specialty coffee cafe in SoHo New York City"\n')
    enhanced = QueryEnhancer(llm).enhance("cafe in SoHo New York City", make_block(nyc, plan_date), nyc)
    assert enhanced == "specialty coffee cafe in SoHo New York City"


@pytest.mark.parametrize("llm", [FakeLLM(""), FakeLLM(error=RuntimeError("offline"))])
def test_query_enhancer_falls_back(nyc, plan_date, llm):
    query = "cafe in SoHo New York City"
    assert QueryEnhancer(llm).enhance(query, make_block(nyc, plan_date), nyc) == query


def test_resolver_uses_enhanced_query(nyc, plan_date, soho_cafes):
    places = FakePlaces({"specialty": soho_cafes})
    resolver = VenueResolver(places, enhancer=QueryEnhancer(FakeLLM("specialty coffee SoHo")))
    resolver.resolve(make_block(nyc, plan_date), nyc)
    assert places.queries[0][0] == "specialty coffee SoHo"
