#!/usr/bin/env python3
"""
Plan a day against the real services configured in .env.
Runs the complete flow from free text to a saved itinerary.

Usage:
    python scripts/plan_day.py "coffee in Soho at 10am then lunch in Chinatown at 1pm"
    python scripts/plan_day.py "museum visit" --city london --date 2025-06-14
"""
import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dayplanner.core.errors import PlannerError  # noqa: E402
from dayplanner.core.planner import build_pipeline  # noqa: E402
from dayplanner.core.schemas import PlanRequest  # noqa: E402
from dayplanner.core.settings import get_settings  # noqa: E402


def print_section(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80 + "\n")


def print_itinerary(itinerary):
    print_section(f"Itinerary {itinerary.id} ({itinerary.city})")
    for i, venue in enumerate(itinerary.places, 1):
        print(f"{i}. {venue.display_time}  {venue.name}  [{venue.category.value}]")
        print(f"   Rating: {venue.rating or 'N/A'}")
        print(f"   Address: {venue.address or 'N/A'}")
        if venue.weather_note:
            print(f"   Weather: {venue.weather_note}")
        for alt in venue.alternatives:
            print(f"     - {alt.name} ({alt.rating or 'N/A'}): {alt.reason}")

    if itinerary.travel_times:
        print("\nTravel:")
        for segment in itinerary.travel_times:
            marker = " (estimated)" if segment.estimated else ""
            print(f"  {segment.from_name} → {segment.to_name}: {segment.duration_minutes} min{marker}")

    if itinerary.unresolved:
        print("\nUnresolved:")
        for block in itinerary.unresolved:
            print(f"  {block.display_time} {block.activity}: {block.message}")

    if itinerary.warnings:
        print("\nWarnings:")
        for warning in itinerary.warnings:
            print(f"  ⚠️  {warning}")


def main():
    parser = argparse.ArgumentParser(description="Plan a day from free text")
    parser.add_argument("query", help="What you want to do")
    parser.add_argument("--city", default="nyc")
    parser.add_argument("--date", default=None, help="YYYY-MM-DD")
    parser.add_argument("--start-time", default=None)
    parser.add_argument("--start-location", default=None)
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    pipeline = build_pipeline(settings)

    request = PlanRequest(
        query=args.query,
        city=args.city,
        date=args.date,
        start_time=args.start_time,
        start_location=args.start_location,
    )
    try:
        itinerary = asyncio.run(pipeline.plan(request))
    except PlannerError as e:
        print(f"❌ Planning failed ({e.status_code}): {e.message}")
        sys.exit(1)

    print_itinerary(itinerary)


if __name__ == "__main__":
    main()
