import pytest
import requests

from dayplanner.core.errors import ExternalServiceTimeout, GeocodeServiceError, PlacesServiceError
from dayplanner.core.places_service import PlacesService, place_from_result


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, payload=None, error=None, status_code=200):
        self.payload = payload or {}
        self.error = error
        self.status_code = status_code
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.error:
            raise self.error
        return FakeResponse(self.payload, self.status_code)


SEARCH_RESULT = {
    "place_id": "abc",
    "name": "Sunrise Coffee",
    "formatted_address": "123 Broadway, New York, NY 10012, USA",
    "geometry": {"location": {"lat": 40.7231, "lng": -74.003}},
    "rating": 4.6,
    "types": ["cafe", "food"],
    "opening_hours": {"open_now": True},
}


def test_requires_api_key():
    with pytest.raises(ValueError):
        PlacesService("")


def test_place_from_result():
    candidate = place_from_result(SEARCH_RESULT)
    assert candidate.place_id == "abc"
    assert (candidate.lat, candidate.lng) == (40.7231, -74.003)
    assert candidate.price_level is None
    assert candidate.opening_hours == {"open_now": True}


def test_search_sends_bias_and_maps_results():
    session = FakeSession({"status": "OK", "results": [SEARCH_RESULT]})
    service = PlacesService("key", session=session)

    results = service.search("cafe in SoHo New York City", location_bias=(40.7, -74.0), radius=5000)

    assert [r.name for r in results] == ["Sunrise Coffee"]
    _, params = session.calls[0]
    assert params["location"] == "40.7,-74.0"
    assert params["radius"] == 5000
    assert params["key"] == "key"


def test_search_zero_results_is_empty():
    service = PlacesService("key", session=FakeSession({"status": "ZERO_RESULTS"}))
    assert service.search("anything") == []


def test_search_denied_status_raises():
    service = PlacesService("key", session=FakeSession({"status": "REQUEST_DENIED"}))
    with pytest.raises(PlacesServiceError):
        service.search("anything")


def test_timeout_maps_to_external_timeout():
    service = PlacesService("key", session=FakeSession(error=requests.Timeout("slow")))
    with pytest.raises(ExternalServiceTimeout):
        service.search("anything")


def test_http_error_maps_to_places_error():
    service = PlacesService("key", session=FakeSession({}, status_code=500))
    with pytest.raises(PlacesServiceError):
        service.search("anything")


def test_resolve_inside_city(nyc):
    payload = {
        "status": "OK",
        "results": [
            {
                "address_components": [{"long_name": "Washington Square Park"}],
                "formatted_address": "Washington Square, New York, NY 10012, USA",
                "geometry": {"location": {"lat": 40.7308, "lng": -73.9973}},
            }
        ],
    }
    result = PlacesService("key", session=FakeSession(payload)).resolve("washington sq", nyc)
    assert result.canonical_name == "Washington Square Park"


def test_resolve_outside_city_is_none(nyc):
    payload = {
        "status": "OK",
        "results": [{"geometry": {"location": {"lat": 42.3601, "lng": -71.0589}}}],
    }
    assert PlacesService("key", session=FakeSession(payload)).resolve("somewhere", nyc) is None


def test_travel_minutes():
    payload = {"rows": [{"elements": [{"status": "OK", "duration": {"value": 754}}]}]}
    service = PlacesService("key", session=FakeSession(payload))
    assert service.travel_minutes((40.72, -74.0), (40.71, -73.99)) == 13


@pytest.mark.parametrize("status", ["REQUEST_DENIED", "OVER_QUERY_LIMIT"])
def test_resolve_error_status_raises(nyc, status):
    service = PlacesService("key", session=FakeSession({"status": status, "results": []}))
    with pytest.raises(GeocodeServiceError):
        service.resolve("somewhere", nyc)


def test_resolve_zero_results_is_none(nyc):
    service = PlacesService("key", session=FakeSession({"status": "ZERO_RESULTS", "results": []}))
    assert service.resolve("somewhere", nyc) is None
