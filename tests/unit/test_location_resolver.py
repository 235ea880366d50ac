import pytest

from dayplanner.core.errors import GeocodeServiceError, LocationUnresolved
from dayplanner.core.location_resolver import LocationResolver
from dayplanner.core.schemas import GeocodeResult


class FakeGeocoder:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def resolve(self, name, city):
        self.calls.append(name)
        if self.error:
            raise self.error
        return self.result


def test_blank_phrase_uses_city_default(nyc):
    match = LocationResolver().resolve("", nyc)
    assert match.name == "Midtown"
    assert match.source == "default"
    assert match.lat == nyc.default_lat


@pytest.mark.parametrize(
    "phrase,expected",
    [
        ("Soho", "SoHo"),
        ("SOHO", "SoHo"),
        ("the Financial District area", "Financial District"),
        ("fidi", "Financial District"),
        ("Chinatown", "Chinatown"),
        ("somewhere in the Lower East Side", "Lower East Side"),
        ("the village", "Greenwich Village"),
        ("The Village", "Greenwich Village"),
        ("wall street area", "Financial District"),
        ("around the wall street area", "Financial District"),
    ],
)
def test_gazetteer_matches(nyc, phrase, expected):
    match = LocationResolver().resolve(phrase, nyc)
    assert match.name == expected
    assert match.source == "gazetteer"
    assert match.is_sub_area
    assert match.resolved


def test_street_abbreviation_expanded(nyc):
    match = LocationResolver().resolve("5th ave", nyc)
    assert match.name == "Fifth Avenue"
    assert match.source == "street"


def test_street_uses_geocoder_coordinates(nyc):
    geocoder = FakeGeocoder(GeocodeResult(canonical_name="Canal St", lat=40.7190, lng=-74.0010))
    match = LocationResolver(geocoder).resolve("canal st", nyc)
    assert match.name == "Canal Street"
    assert match.lat == 40.7190
    assert geocoder.calls == ["Canal Street"]


def test_geocoder_result_inside_city(nyc):
    geocoder = FakeGeocoder(GeocodeResult(canonical_name="Hudson Yards", lat=40.7536, lng=-74.0011))
    match = LocationResolver(geocoder).resolve("Hudson Yards", nyc)
    assert match.name == "Hudson Yards"
    assert match.source == "geocoder"


def test_geocoder_result_outside_city_rejected(nyc):
    geocoder = FakeGeocoder(GeocodeResult(canonical_name="Hudson", lat=42.2529, lng=-73.7910))
    match = LocationResolver(geocoder).resolve("Hudson", nyc)
    assert not match.resolved
    assert match.name == "Hudson"


def test_geocoder_error_is_ignored(nyc):
    geocoder = FakeGeocoder(error=GeocodeServiceError("boom"))
    match = LocationResolver(geocoder).resolve("Sohoo", nyc)
    assert not match.resolved
    assert match.name == "Sohoo"


def test_unresolved_returns_suggestions(nyc):
    match = LocationResolver().resolve("Sohoo", nyc)
    assert not match.resolved
    assert match.source == "unresolved"
    assert "SoHo" in match.suggestions


def test_strict_raises_with_suggestions(nyc):
    with pytest.raises(LocationUnresolved) as exc:
        LocationResolver().resolve("Chinatwn", nyc, strict=True)
    assert "Chinatown" in exc.value.suggestions


def test_village_misspelling_suggests_greenwich(nyc):
    match = LocationResolver().resolve("the vilage", nyc)
    assert not match.resolved
    assert "Greenwich Village" in match.suggestions


def test_plain_wall_street_is_still_a_street(nyc):
    match = LocationResolver().resolve("wall st", nyc)
    assert match.name == "Wall Street"
    assert match.source == "street"
