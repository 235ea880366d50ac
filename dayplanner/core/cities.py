"""
Supported cities: timezone, default location, named-area gazetteer,
address aliases and street abbreviations.
"""

import re

from pydantic import BaseModel, Field

from dayplanner.core.errors import UnknownCityError
from dayplanner.core.schemas import CityInfo


class Area(BaseModel):
    name: str
    lat: float
    lng: float
    aliases: list[str] = Field(default_factory=list)


class CityConfig(BaseModel):
    slug: str
    name: str
    timezone: str
    default_lat: float
    default_lng: float
    default_area: str
    radius_km: float = 40.0
    areas: list[Area] = Field(default_factory=list)
    address_aliases: list[str] = Field(default_factory=list)
    # (pattern, expansion) pairs, matched case-insensitively
    street_patterns: list[tuple[str, str]] = Field(default_factory=list)

    def to_info(self) -> CityInfo:
        return CityInfo(slug=self.slug, name=self.name, timezone=self.timezone)

    def find_area(self, name: str) -> Area | None:
        lowered = name.strip().lower()
        for area in self.areas:
            if area.name.lower() == lowered or lowered in (a.lower() for a in area.aliases):
                return area
        return None


NYC = CityConfig(
    slug="nyc",
    name="New York City",
    timezone="America/New_York",
    default_lat=40.7128,
    default_lng=-74.0060,
    default_area="Midtown",
    radius_km=40.0,
    areas=[
        Area(name="SoHo", lat=40.7231, lng=-74.0030, aliases=["soho", "so ho"]),
        Area(
            name="Greenwich Village",
            lat=40.7336,
            lng=-74.0027,
            aliases=["the village", "west village", "greenwich"],
        ),
        Area(name="Midtown", lat=40.7549, lng=-73.9840, aliases=["midtown manhattan"]),
        Area(
            name="Financial District",
            lat=40.7074,
            lng=-74.0113,
            aliases=["fidi", "wall street area", "downtown"],
        ),
        Area(name="Upper West Side", lat=40.7870, lng=-73.9754, aliases=["uws"]),
        Area(name="Chinatown", lat=40.7158, lng=-73.9970, aliases=["china town"]),
        Area(name="Little Italy", lat=40.7191, lng=-73.9973),
        Area(name="East Village", lat=40.7265, lng=-73.9815),
        Area(name="Chelsea", lat=40.7465, lng=-74.0014),
        Area(name="Tribeca", lat=40.7163, lng=-74.0086),
        Area(name="Lower East Side", lat=40.7150, lng=-73.9843, aliases=["les"]),
        Area(name="Times Square", lat=40.7580, lng=-73.9855),
        Area(name="Central Park", lat=40.7829, lng=-73.9654),
        Area(name="Williamsburg", lat=40.7081, lng=-73.9571),
    ],
    address_aliases=[
        "new york",
        "ny",
        "nyc",
        "manhattan",
        "brooklyn",
        "queens",
        "bronx",
        "staten island",
    ],
    street_patterns=[
        (r"wall\s*st(?:reet)?", "Wall Street"),
        (r"(?:5th|fifth)\s*ave(?:nue)?", "Fifth Avenue"),
        (r"madison\s*ave(?:nue)?", "Madison Avenue"),
        (r"lexington\s*ave(?:nue)?", "Lexington Avenue"),
        (r"park\s*ave(?:nue)?", "Park Avenue"),
        (r"canal\s*st(?:reet)?", "Canal Street"),
        (r"mott\s*st(?:reet)?", "Mott Street"),
        (r"mulberry\s*st(?:reet)?", "Mulberry Street"),
        (r"houston\s*st(?:reet)?", "Houston Street"),
        (r"bleecker\s*st(?:reet)?", "Bleecker Street"),
        (r"christopher\s*st(?:reet)?", "Christopher Street"),
        (r"west\s*4th(?:\s*st(?:reet)?)?", "West 4th Street"),
        (r"42nd\s*st(?:reet)?", "42nd Street"),
        (r"34th\s*st(?:reet)?", "34th Street"),
        (r"14th\s*st(?:reet)?", "14th Street"),
        (r"grand\s*st(?:reet)?", "Grand Street"),
        (r"delancey\s*st(?:reet)?", "Delancey Street"),
        (r"broadway", "Broadway"),
        (r"bowery", "Bowery"),
    ],
)

LONDON = CityConfig(
    slug="london",
    name="London",
    timezone="Europe/London",
    default_lat=51.5074,
    default_lng=-0.1278,
    default_area="Westminster",
    radius_km=35.0,
    areas=[
        Area(name="Westminster", lat=51.4975, lng=-0.1357),
        Area(name="Canary Wharf", lat=51.5054, lng=-0.0235),
        Area(name="Mayfair", lat=51.5099, lng=-0.1495),
        Area(name="Soho", lat=51.5136, lng=-0.1371),
        Area(name="Kensington", lat=51.5020, lng=-0.1947, aliases=["south kensington"]),
        Area(name="Shoreditch", lat=51.5264, lng=-0.0778),
        Area(name="Covent Garden", lat=51.5117, lng=-0.1240),
        Area(name="Camden", lat=51.5390, lng=-0.1426, aliases=["camden town"]),
    ],
    address_aliases=["london", "uk", "united kingdom", "england"],
    street_patterns=[
        (r"oxford\s*st(?:reet)?", "Oxford Street"),
        (r"regent\s*st(?:reet)?", "Regent Street"),
        (r"bond\s*st(?:reet)?", "Bond Street"),
        (r"fleet\s*st(?:reet)?", "Fleet Street"),
        (r"kings?\s*r(?:oa)?d", "King's Road"),
        (r"portobello\s*r(?:oa)?d", "Portobello Road"),
        (r"brick\s*l(?:a)?n(?:e)?", "Brick Lane"),
        (r"piccadilly", "Piccadilly"),
        (r"strand", "Strand"),
    ],
)

BOSTON = CityConfig(
    slug="boston",
    name="Boston",
    timezone="America/New_York",
    default_lat=42.3601,
    default_lng=-71.0589,
    default_area="Downtown Boston",
    radius_km=30.0,
    areas=[
        Area(name="Downtown Boston", lat=42.3555, lng=-71.0605, aliases=["downtown"]),
        Area(name="Back Bay", lat=42.3502, lng=-71.0808),
        Area(name="North End", lat=42.3648, lng=-71.0541),
        Area(name="Beacon Hill", lat=42.3588, lng=-71.0637),
        Area(name="Cambridge", lat=42.3736, lng=-71.1097, aliases=["harvard square"]),
        Area(name="South End", lat=42.3429, lng=-71.0738),
        Area(name="Seaport", lat=42.3519, lng=-71.0446, aliases=["seaport district"]),
    ],
    address_aliases=[
        "boston",
        "ma",
        "massachusetts",
        "cambridge",
        "somerville",
        "brookline",
    ],
    street_patterns=[
        (r"newbury\s*st(?:reet)?", "Newbury Street"),
        (r"boylston\s*st(?:reet)?", "Boylston Street"),
        (r"commonwealth\s*ave(?:nue)?", "Commonwealth Avenue"),
        (r"charles\s*st(?:reet)?", "Charles Street"),
        (r"beacon\s*st(?:reet)?", "Beacon Street"),
        (r"hanover\s*st(?:reet)?", "Hanover Street"),
        (r"tremont\s*st(?:reet)?", "Tremont Street"),
        (r"atlantic\s*ave(?:nue)?", "Atlantic Avenue"),
    ],
)

AUSTIN = CityConfig(
    slug="austin",
    name="Austin",
    timezone="America/Chicago",
    default_lat=30.2672,
    default_lng=-97.7431,
    default_area="Downtown Austin",
    radius_km=30.0,
    areas=[
        Area(name="Downtown Austin", lat=30.2672, lng=-97.7431, aliases=["downtown"]),
        Area(name="South Congress", lat=30.2500, lng=-97.7494, aliases=["soco"]),
        Area(name="East Austin", lat=30.2630, lng=-97.7220),
        Area(name="Rainey Street", lat=30.2590, lng=-97.7389, aliases=["rainey"]),
        Area(name="Zilker", lat=30.2669, lng=-97.7729, aliases=["zilker park"]),
    ],
    address_aliases=["austin", "tx", "texas"],
    street_patterns=[
        (r"6th\s*st(?:reet)?", "6th Street"),
        (r"congress\s*ave(?:nue)?", "Congress Avenue"),
        (r"guadalupe\s*st(?:reet)?", "Guadalupe Street"),
        (r"lamar\s*blvd", "Lamar Boulevard"),
        (r"cesar\s*chavez", "Cesar Chavez Street"),
    ],
)

CITIES: dict[str, CityConfig] = {c.slug: c for c in (NYC, LONDON, BOSTON, AUSTIN)}

_CITY_SLUG_ALIASES = {
    "new york": "nyc",
    "new york city": "nyc",
    "ny": "nyc",
    "manhattan": "nyc",
}


def get_city(slug: str) -> CityConfig:
    key = (slug or "").strip().lower()
    key = _CITY_SLUG_ALIASES.get(key, key)
    city = CITIES.get(key)
    if city is None:
        raise UnknownCityError(slug)
    return city


def list_cities() -> list[CityInfo]:
    return [city.to_info() for city in CITIES.values()]


def address_in_city(address: str, city: CityConfig) -> bool:
    """
    Check whether an address mentions one of the city's aliases.

    Aliases are matched on word boundaries; short ones (state codes such as
    "ny" or "ma") must also be delimited by a comma, space or the end of the
    string so that e.g. "Mall Road" does not match "ma".
    """
    lowered = address.lower()
    for alias in city.address_aliases:
        if len(alias) <= 2:
            pattern = rf"(?:^|[\s,]){re.escape(alias)}(?=[\s,]|$)"
        else:
            pattern = rf"\b{re.escape(alias)}\b"
        if re.search(pattern, lowered):
            return True
    return False
