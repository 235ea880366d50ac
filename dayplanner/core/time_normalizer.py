"""
Utilities for turning vague or explicit time phrases into a canonical local
clock time for a city.
"""

import logging
import re
from datetime import date, datetime, time as time_obj, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dayplanner.core.schemas import NormalizedTime

logger = logging.getLogger(__name__)

DEFAULT_CLOCK = (12, 0)

# Longest phrases first so "late afternoon" wins over "afternoon"
PERIOD_ANCHORS: list[tuple[str, tuple[int, int]]] = [
    ("early morning", (7, 0)),
    ("late morning", (11, 0)),
    ("late afternoon", (16, 0)),
    ("lunchtime", (12, 0)),
    ("afternoon", (14, 0)),
    ("midnight", (0, 0)),
    ("morning", (9, 0)),
    ("evening", (18, 0)),
    ("tonight", (21, 0)),
    ("midday", (12, 0)),
    ("night", (21, 0)),
    ("noon", (12, 0)),
    ("lunch", (12, 0)),
    ("dinner", (19, 0)),
]

_QUALIFIER_RE = re.compile(
    r"^(?:(?:around|about|approximately|approx|roughly|at|by|circa|in the|the)\b\.?|~)\s*",
    re.IGNORECASE,
)
_MERIDIEM_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m\.?(?![a-z])", re.IGNORECASE)
_CLOCK_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b")
_COMPACT_RE = re.compile(r"\b(\d{3,4})\b")
_BARE_HOUR_RE = re.compile(r"\b(\d{1,2})\b")


def resolve_timezone(tz_name: str | None) -> ZoneInfo | timezone:
    if not tz_name:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"[TimeNormalizer] Unknown timezone '{tz_name}', using UTC")
        return timezone.utc


def parse_reference_date(value: str | None, tz_name: str | None = None) -> date:
    """
    Parse a YYYY-MM-DD date, falling back to today's date in the city.
    """
    if value:
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            logger.warning(f"[TimeNormalizer] Invalid date '{value}', using today")
    return datetime.now(resolve_timezone(tz_name)).date()


def format_display(hour: int, minute: int) -> str:
    """Format a 24-hour clock as '3:00 PM'."""
    suffix = "AM" if hour < 12 else "PM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d} {suffix}"


def _valid(hour: int, minute: int) -> bool:
    return 0 <= hour <= 23 and 0 <= minute <= 59


def parse_clock(phrase: str | None) -> tuple[int, int] | None:
    """
    Parse a time phrase into (hour, minute), or None if nothing usable is found.

    Handles named periods ("morning", "around noon"), 12-hour times ("3pm",
    "3:30 p.m."), 24-hour times ("18:30", "1830") and bare hours ("at 6").
    A bare hour below 7 with no meridiem is read as afternoon/evening.
    """
    if not phrase:
        return None

    text = phrase.strip().lower()
    # Strip stacked qualifiers: "at around 3pm"
    previous = None
    while text and text != previous:
        previous = text
        text = _QUALIFIER_RE.sub("", text).strip()
    if not text:
        return None

    match = _MERIDIEM_RE.search(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        if match.group(3) == "a":
            hour = 0 if hour == 12 else hour
        elif hour != 12:
            hour += 12
        return hour, minute

    match = _CLOCK_RE.search(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        return (hour, minute) if _valid(hour, minute) else None

    for phrase_anchor, anchor in PERIOD_ANCHORS:
        if re.search(rf"\b{phrase_anchor}\b", text):
            return anchor

    match = _COMPACT_RE.search(text)
    if match:
        digits = match.group(1).zfill(4)
        hour, minute = int(digits[:2]), int(digits[2:])
        return (hour, minute) if _valid(hour, minute) else None

    match = _BARE_HOUR_RE.search(text)
    if match:
        hour = int(match.group(1))
        if 1 <= hour <= 6:
            hour += 12
        return (hour, 0) if _valid(hour, 0) else None

    return None


def normalize_time(
    phrase: str | None,
    reference_date: date | None = None,
    tz_name: str | None = None,
) -> NormalizedTime:
    """
    Normalize a time phrase for a city. Never raises.

    Args:
        phrase: Time text such as "3pm", "around noon", "morning", "18:30" or empty
        reference_date: Local date the time falls on (today in the city if None)
        tz_name: IANA timezone of the city

    Returns:
        NormalizedTime with the HH:MM clock, the UTC timestamp of that local
        time and a display label. Unparsable input lands on 12:00.
    """
    tz = resolve_timezone(tz_name)
    if reference_date is None:
        reference_date = datetime.now(tz).date()

    try:
        parsed = parse_clock(phrase)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"[TimeNormalizer] Could not parse '{phrase}': {e}")
        parsed = None

    if parsed is None:
        if phrase and phrase.strip():
            logger.debug(f"[TimeNormalizer] Unparsable time '{phrase}', defaulting to noon")
        parsed = DEFAULT_CLOCK

    hour, minute = parsed
    local = datetime.combine(reference_date, time_obj(hour, minute), tzinfo=tz)
    return NormalizedTime(
        clock=f"{hour:02d}:{minute:02d}",
        timestamp=local.astimezone(timezone.utc),
        display=format_display(hour, minute),
    )
