from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ActivityCategory(str, Enum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    MUSEUM = "museum"
    PARK = "park"
    BAR = "bar"
    SHOPPING = "shopping"
    ATTRACTION = "attraction"
    GENERIC = "generic"


IntentSource = Literal["fixed", "flexible"]

# Models that cross the API or storage boundary use camelCase keys
WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request / interpretation
# =============================================================================


class PlanRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    query: str = Field(..., description="Free-text description of the day")
    date: str | None = Field(None, description="Reference date, YYYY-MM-DD")
    start_time: str | None = None
    city: str = Field("nyc", description="Supported city slug, e.g. 'nyc'")
    start_location: str | None = None
    strict_locations: bool = False

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Query cannot be empty")
        return v.strip()

    @field_validator("city")
    @classmethod
    def normalize_city(cls, v: str) -> str:
        return v.strip().lower()


class RawIntent(BaseModel):
    location: str | None = None
    activity: str
    time: str | None = None
    venue_preference: str | None = None
    keywords: list[str] = Field(default_factory=list)
    source: IntentSource = "flexible"


class NormalizedTime(BaseModel):
    clock: str = Field(..., description="24-hour local time, HH:MM")
    timestamp: datetime = Field(..., description="UTC instant of the local time")
    display: str = Field(..., description="Display label, e.g. '3:00 PM'")


class LocationMatch(BaseModel):
    name: str
    lat: float | None = None
    lng: float | None = None
    resolved: bool = True
    source: Literal["gazetteer", "street", "geocoder", "default", "unresolved"] = "gazetteer"
    is_sub_area: bool = False
    suggestions: list[str] = Field(default_factory=list)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class TimeBlock(BaseModel):
    activity: str
    location: LocationMatch
    time: NormalizedTime
    category: ActivityCategory
    search_term: str
    venue_preference: str | None = None
    keywords: list[str] = Field(default_factory=list)
    min_rating: float = 4.0
    source: IntentSource = "flexible"

    @property
    def key(self) -> str:
        return f"{self.location.name.strip().lower()}|{self.category.value}"


# =============================================================================
# External place data
# =============================================================================


class PlaceCandidate(BaseModel):
    place_id: str
    name: str
    address: str = ""
    lat: float | None = None
    lng: float | None = None
    rating: float | None = None
    price_level: int | None = None
    types: list[str] = Field(default_factory=list)
    opening_hours: dict[str, Any] | None = Field(
        None, description="Google-style opening_hours: periods and weekday_text"
    )


class ForecastPoint(BaseModel):
    time: datetime
    condition: str
    temp_c: float


class GeocodeResult(BaseModel):
    canonical_name: str
    lat: float
    lng: float
    address: str = ""


# =============================================================================
# Plan output
# =============================================================================


class ResolvedVenue(BaseModel):
    model_config = WIRE_CONFIG

    place_id: str
    name: str
    address: str = ""
    lat: float | None = None
    lng: float | None = None
    rating: float | None = None
    price_level: int | None = None
    types: list[str] = Field(default_factory=list)
    is_primary: bool = False
    distance_from_primary_km: float | None = None
    reason: str | None = None

    # Scheduling context, set on primaries only
    activity: str | None = None
    category: ActivityCategory | None = None
    scheduled_time: str | None = Field(None, description="24-hour local time, HH:MM")
    display_time: str | None = None
    weather_note: str | None = None
    alternatives: list["ResolvedVenue"] = Field(default_factory=list)


class VenueResult(BaseModel):
    primary: ResolvedVenue
    alternatives: list[ResolvedVenue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class UnresolvedBlock(BaseModel):
    model_config = WIRE_CONFIG

    activity: str
    category: ActivityCategory
    location: str
    display_time: str
    message: str


class TravelSegment(BaseModel):
    model_config = WIRE_CONFIG

    from_name: str
    to_name: str
    duration_minutes: int
    estimated: bool = False


class Itinerary(BaseModel):
    model_config = WIRE_CONFIG

    id: str | None = None
    query: str
    city: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    places: list[ResolvedVenue] = Field(default_factory=list)
    travel_times: list[TravelSegment] = Field(default_factory=list)
    unresolved: list[UnresolvedBlock] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PlanResponse(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    places: list[ResolvedVenue]
    travel_times: list[TravelSegment] = Field(default_factory=list)
    unresolved: list[UnresolvedBlock] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CityInfo(BaseModel):
    slug: str
    name: str
    timezone: str
