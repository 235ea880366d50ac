"""
Utilities for parsing venue opening hours and checking them against a
scheduled instant.
"""

import logging
import re
from datetime import datetime, tzinfo
from typing import Any

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def parse_opening_hours(weekday_text: list[str]) -> dict[str, dict[str, str | None]]:
    """
    Parse Google Places opening hours weekday_text into structured format.

    Args:
        weekday_text: List of strings like ["Monday: 9:00 AM – 5:00 PM", "Tuesday: Closed"]

    Returns:
        Dictionary mapping day name to {open, close} times:
        {
            "Monday": {"open": "09:00", "close": "17:00"},
            "Tuesday": {"open": None, "close": None},  # Closed
            ...
        }
    """
    hours_map: dict[str, dict[str, str | None]] = {}

    for entry in weekday_text:
        if ":" not in entry:
            continue

        day, hours_str = entry.split(":", 1)
        day = day.strip()
        hours_str = hours_str.strip()

        if "closed" in hours_str.lower():
            hours_map[day] = {"open": None, "close": None}
            continue

        if "24 hours" in hours_str.lower():
            hours_map[day] = {"open": "00:00", "close": "23:59"}
            continue

        # Google uses various separators: –, -, to
        time_pattern = r"(\d{1,2}):(\d{2})\s*(AM|PM|am|pm)"
        matches = re.findall(time_pattern, hours_str)

        if len(matches) >= 2:
            open_match = matches[0]
            close_match = matches[-1]
            open_24 = convert_to_24h(int(open_match[0]), int(open_match[1]), open_match[2])
            close_24 = convert_to_24h(int(close_match[0]), int(close_match[1]), close_match[2])
            hours_map[day] = {"open": open_24, "close": close_24}
        else:
            # Can't parse - assume open all day
            hours_map[day] = {"open": "00:00", "close": "23:59"}

    return hours_map


def convert_to_24h(hour: int, minute: int, meridiem: str) -> str:
    """
    Convert 12-hour time to 24-hour format string.

    Args:
        hour: Hour (1-12)
        minute: Minute (0-59)
        meridiem: "AM" or "PM"

    Returns:
        Time string in HH:MM format (24-hour)
    """
    meridiem = meridiem.upper()

    if meridiem == "AM":
        if hour == 12:
            hour = 0
    else:
        if hour != 12:
            hour += 12

    return f"{hour:02d}:{minute:02d}"


def parse_time_to_minutes(time_str: str) -> int:
    """
    Convert an "HH:MM" 24-hour string to minutes since midnight.
    """
    hours, minutes = time_str.strip().split(":", 1)
    return int(hours) * 60 + int(minutes)


def _is_open_from_periods(periods: list[dict[str, Any]], local: datetime) -> bool | None:
    # Google periods use day 0 = Sunday
    google_day = (local.weekday() + 1) % 7
    now = google_day * MINUTES_PER_DAY + local.hour * 60 + local.minute

    usable = False
    for period in periods:
        opening = period.get("open")
        if not opening or "time" not in opening:
            continue
        closing = period.get("close")
        if closing is None:
            # A single open period without close means open 24/7
            return True
        usable = True

        start = opening["day"] * MINUTES_PER_DAY + parse_hhmm(opening["time"])
        end = closing["day"] * MINUTES_PER_DAY + parse_hhmm(closing["time"])
        if end <= start:
            end += MINUTES_PER_WEEK
        if start <= now < end or start <= now + MINUTES_PER_WEEK < end:
            return True

    return False if usable else None


def _is_open_from_weekday_text(weekday_text: list[str], local: datetime) -> bool | None:
    hours = parse_opening_hours(weekday_text)
    if not hours:
        return None

    now = local.hour * 60 + local.minute
    today = DAY_NAMES[local.weekday()]
    yesterday = DAY_NAMES[(local.weekday() - 1) % 7]

    # Still open from yesterday's past-midnight hours
    prev = hours.get(yesterday)
    if prev and prev["open"] and prev["close"]:
        prev_open = parse_time_to_minutes(prev["open"])
        prev_close = parse_time_to_minutes(prev["close"])
        if prev_close < prev_open and now < prev_close:
            return True

    day_hours = hours.get(today)
    if day_hours is None:
        return None
    if day_hours["open"] is None or day_hours["close"] is None:
        return False

    open_minutes = parse_time_to_minutes(day_hours["open"])
    close_minutes = parse_time_to_minutes(day_hours["close"])
    if close_minutes < open_minutes:
        return now >= open_minutes or now < close_minutes
    return open_minutes <= now <= close_minutes


def parse_hhmm(value: str) -> int:
    """Google period time ("0930") to minutes since midnight."""
    value = value.zfill(4)
    return int(value[:2]) * 60 + int(value[2:])


def is_open_at(opening_hours: dict[str, Any] | None, instant: datetime, tz: tzinfo) -> bool | None:
    """
    Check whether a venue is open at an instant, in the venue's local time.

    Args:
        opening_hours: Google-style dict with "periods" and/or "weekday_text"
        instant: Aware datetime of the visit
        tz: Local timezone of the city

    Returns:
        True/False when the hours say so, None when they are missing or unusable
    """
    if not opening_hours:
        return None

    local = instant.astimezone(tz)
    try:
        periods = opening_hours.get("periods")
        if periods:
            result = _is_open_from_periods(periods, local)
            if result is not None:
                return result
        weekday_text = opening_hours.get("weekday_text")
        if weekday_text:
            return _is_open_from_weekday_text(weekday_text, local)
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"[OpeningHours] Unusable hours data: {e}")
    return None
