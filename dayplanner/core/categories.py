"""
Activity categories: keyword classification, search terms, Google type
filters and outdoor/indoor venue classification.
"""

import re

from dayplanner.core.schemas import ActivityCategory

MEAL_WORDS = (
    "breakfast",
    "brunch",
    "lunch",
    "dinner",
    "supper",
    "eat",
    "eating",
    "food",
    "meal",
    "restaurant",
    "restaurants",
    "dine",
    "dining",
    "pizza",
    "sushi",
    "burger",
    "burgers",
    "tacos",
    "dim sum",
    "noodles",
)

# Checked in order; first match wins
CATEGORY_KEYWORDS: list[tuple[ActivityCategory, tuple[str, ...]]] = [
    (ActivityCategory.MUSEUM, ("museum", "museums", "gallery", "galleries", "exhibit", "exhibition")),
    (ActivityCategory.RESTAURANT, MEAL_WORDS),
    (ActivityCategory.CAFE, ("coffee", "cafe", "café", "espresso", "latte", "tea", "bakery", "pastry", "pastries")),
    (ActivityCategory.BAR, ("bar", "bars", "drink", "drinks", "pub", "pubs", "cocktail", "cocktails", "beer", "wine")),
    (ActivityCategory.PARK, ("park", "parks", "garden", "gardens", "outdoor", "outdoors", "picnic", "hike", "stroll")),
    (ActivityCategory.SHOPPING, ("shop", "shops", "shopping", "store", "stores", "boutique", "boutiques", "mall", "market")),
]

GENERIC_ACTIVITY = "explore the area"

SEARCH_TERMS: dict[ActivityCategory, str] = {
    ActivityCategory.RESTAURANT: "restaurant",
    ActivityCategory.CAFE: "cafe",
    ActivityCategory.MUSEUM: "museum",
    ActivityCategory.PARK: "park",
    ActivityCategory.BAR: "bar",
    ActivityCategory.SHOPPING: "shopping",
    ActivityCategory.ATTRACTION: "tourist attraction",
    ActivityCategory.GENERIC: "things to do",
}

# category → (excluded types, confirming types)
TYPE_FILTERS: dict[ActivityCategory, tuple[set[str], set[str]]] = {
    ActivityCategory.CAFE: (
        {"gas_station", "lodging", "hospital", "car_dealer", "car_rental"},
        {"cafe", "restaurant", "bakery", "food"},
    ),
    ActivityCategory.RESTAURANT: (
        {"gas_station", "lodging", "hospital"},
        {"restaurant", "meal_takeaway", "meal_delivery", "food"},
    ),
    ActivityCategory.BAR: (
        {"gas_station", "hospital"},
        {"bar", "night_club", "restaurant"},
    ),
    ActivityCategory.MUSEUM: (
        {"gas_station", "lodging"},
        {"museum", "art_gallery", "tourist_attraction"},
    ),
    ActivityCategory.PARK: (
        {"gas_station", "parking"},
        {"park", "natural_feature", "tourist_attraction", "campground"},
    ),
    ActivityCategory.SHOPPING: (
        {"gas_station"},
        {
            "shopping_mall",
            "store",
            "clothing_store",
            "department_store",
            "book_store",
            "shoe_store",
            "jewelry_store",
        },
    ),
}

OUTDOOR_TYPES = {
    "park",
    "zoo",
    "amusement_park",
    "tourist_attraction",
    "stadium",
    "campground",
    "rv_park",
    "beach",
    "natural_feature",
    "hiking_area",
    "golf_course",
}

INDOOR_TYPES = {
    "museum",
    "art_gallery",
    "aquarium",
    "shopping_mall",
    "movie_theater",
    "library",
    "bowling_alley",
    "casino",
    "church",
    "restaurant",
    "cafe",
    "bar",
    "night_club",
    "store",
    "department_store",
}

_KEYWORD_PATTERNS = [
    (category, re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE))
    for category, words in CATEGORY_KEYWORDS
]


def classify_activity(text: str | None) -> ActivityCategory | None:
    """Return the first category whose keywords appear in the text, or None."""
    if not text:
        return None
    for category, pattern in _KEYWORD_PATTERNS:
        if pattern.search(text):
            return category
    return None


def category_for(text: str | None) -> ActivityCategory:
    return classify_activity(text) or ActivityCategory.ATTRACTION


def is_outdoor_types(types: list[str]) -> bool:
    """Outdoor if any outdoor type is present and no indoor type overrides it."""
    type_set = set(types)
    if type_set & INDOOR_TYPES:
        return False
    return bool(type_set & OUTDOOR_TYPES)
