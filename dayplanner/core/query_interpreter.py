"""
Turn free-text day plans into raw intents.

Two strategies share one contract: an LLM-backed interpreter and a
deterministic keyword heuristic. QueryInterpreter tries the LLM once and falls
back to the heuristic on any failure.
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from dayplanner.core.categories import GENERIC_ACTIVITY, classify_activity
from dayplanner.core.cities import CityConfig
from dayplanner.core.errors import InterpretationFailure
from dayplanner.core.llm_provider import LLMProvider
from dayplanner.core.schemas import RawIntent

logger = logging.getLogger(__name__)


def extract_json_object(response: str) -> dict:
    """
    Pull the JSON object out of an LLM response.

    Strips markdown code fences and any prose around the outermost braces.

    Raises:
        InterpretationFailure: no parseable JSON object in the response
    """
    response_text = (response or "").strip()
    if not response_text:
        raise InterpretationFailure("Empty response from model")

    # Remove markdown code fences if present
    if response_text.startswith("```"):
        lines = response_text.split("\n")
        response_text = "\n".join([l for l in lines if not l.strip().startswith("```")])

    json_match = re.search(r"\{.*\}", response_text, re.DOTALL)
    if not json_match:
        raise InterpretationFailure("No JSON object in model response")

    try:
        data = json.loads(json_match.group(0))
    except json.JSONDecodeError as e:
        raise InterpretationFailure(f"Malformed JSON from model: {e}") from e
    if not isinstance(data, dict):
        raise InterpretationFailure("Model response is not a JSON object")
    return data


# =============================================================================
# Strategy contract
# =============================================================================


class InterpretationStrategy(ABC):
    name: str = "base"

    @abstractmethod
    def interpret(
        self,
        text: str,
        date: str | None,
        start_time: str | None,
        city: CityConfig,
    ) -> list[RawIntent]:
        """Return raw intents for the request text."""


# =============================================================================
# AI-assisted strategy
# =============================================================================


class _InterpretedEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time: str | None = None
    activity: str
    location: str | None = None
    venue_preference: str | None = Field(
        None, validation_alias=AliasChoices("venuePreference", "venue_preference")
    )
    keywords: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("keywords", "specificRequirements", "searchParameters"),
    )

    @field_validator("activity")
    @classmethod
    def activity_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("activity cannot be empty")
        return v.strip()

    @field_validator("keywords", mode="before")
    @classmethod
    def coerce_keywords(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        if isinstance(v, dict):
            return [str(x) for x in v.values() if x]
        return [str(x) for x in v if x]


class _InterpretationPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fixed_time_entries: list[_InterpretedEntry] = Field(
        default_factory=list, validation_alias=AliasChoices("fixedTimeEntries", "fixed_time_entries")
    )
    flexible_time_entries: list[_InterpretedEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("flexibleTimeEntries", "flexible_time_entries"),
    )


class AIQueryInterpreter(InterpretationStrategy):
    name = "ai"

    def __init__(self, provider: LLMProvider, temperature: float = 0.2):
        self.provider = provider
        self.temperature = temperature

    def _messages(self, text: str, date: str | None, start_time: str | None, city: CityConfig):
        area_names = ", ".join(a.name for a in city.areas)
        system_prompt = {
            "role": "system",
            "content": (
                f"You turn a person's plans for a day in {city.name} into structured entries.\n\n"
                "Split the request into two lists:\n"
                "1. fixedTimeEntries: activities where the user stated an explicit time "
                "(e.g. 'at 10am', 'around 3pm').\n"
                "2. flexibleTimeEntries: activities without an explicit time. Give each one a "
                "sensible time: 'morning' → 09:00, 'afternoon' → 14:00, 'evening' → 18:00, "
                "'night' → 21:00, 'noon' → 12:00, 'early morning' → 07:00, "
                "'late morning' → 11:00, 'late afternoon' → 16:00.\n\n"
                "For every entry return: time (HH:MM, 24-hour), activity (short description), "
                "location (neighborhood, street or landmark as the user wrote it, or null), "
                "venuePreference (a specific kind of venue such as 'rooftop bar' or "
                "'Italian restaurant', or null) and keywords (list of extra requirements such as "
                "'quiet', 'cheap', 'outdoor seating').\n"
                f"Known areas in {city.name}: {area_names}.\n"
                "If the user says 'nearby' or gives no location, use null or 'nearby'.\n\n"
                "Return ONLY valid JSON in this exact format:\n"
                "{\n"
                '  "fixedTimeEntries": [{"time": "10:00", "activity": "coffee", '
                '"location": "SoHo", "venuePreference": null, "keywords": []}],\n'
                '  "flexibleTimeEntries": []\n'
                "}"
            ),
        }
        context = []
        if date:
            context.append(f"Date: {date}")
        if start_time:
            context.append(f"Day starts at: {start_time}")
        user_prompt = {
            "role": "user",
            "content": ("\n".join(context) + "\n" if context else "") + f"Request:\n{text}",
        }
        return [system_prompt, user_prompt]

    def interpret(self, text, date, start_time, city):
        try:
            response = self.provider.chat(
                messages=self._messages(text, date, start_time, city),
                temperature=self.temperature,
            )
        except InterpretationFailure:
            raise
        except Exception as e:
            raise InterpretationFailure(f"Model call failed: {e}") from e

        data = extract_json_object(response)
        try:
            payload = _InterpretationPayload.model_validate(data)
        except ValidationError as e:
            raise InterpretationFailure(f"Model response failed validation: {e}") from e

        intents: list[RawIntent] = []
        for entry in payload.fixed_time_entries:
            intents.append(self._to_intent(entry, "fixed" if entry.time else "flexible"))
        for entry in payload.flexible_time_entries:
            intents.append(self._to_intent(entry, "flexible"))

        if not intents:
            raise InterpretationFailure("Model returned no entries")
        return intents

    @staticmethod
    def _to_intent(entry: _InterpretedEntry, source: str) -> RawIntent:
        return RawIntent(
            location=entry.location,
            activity=entry.activity,
            time=entry.time,
            venue_preference=entry.venue_preference,
            keywords=entry.keywords,
            source=source,
        )


# =============================================================================
# Heuristic strategy
# =============================================================================

CLOCK_TIME_RE = re.compile(r"\b(\d{1,2}(?::\d{2})?\s*(?:am|pm))\b", re.IGNORECASE)
PERIOD_RE = re.compile(
    r"\b(early morning|late morning|late afternoon|morning|afternoon|evening|tonight|night|noon|midday)\b",
    re.IGNORECASE,
)
# "in X", "at X", "near X"; X ends at a time phrase, another preposition or the clause end
LOCATION_RE = re.compile(
    r"\b(?:in|at|near)\s+(?:the\s+)?"
    r"([a-z][\w'&.-]*(?:\s+[\w'&.-]+)*?)"
    r"(?=\s+(?:at|around|about|by|for|with|and|from|before|after|until|on|in|near"
    r"|today|tomorrow|tonight|this|morning|afternoon|evening|night)\b"
    r"|\s+\d|[,;!?]|\.?\s*$)",
    re.IGNORECASE,
)
CLAUSE_SPLIT_RE = re.compile(
    r"[,;.!?]|\s+(?:and then|then|after that|afterwards|followed by|later)\s+",
    re.IGNORECASE,
)
NOT_LOCATIONS = {
    "morning",
    "afternoon",
    "evening",
    "night",
    "noon",
    "midday",
    "lunch",
    "dinner",
    "breakfast",
    "brunch",
}


def extract_location(text: str) -> str | None:
    for match in LOCATION_RE.finditer(text):
        candidate = match.group(1).strip(" .-")
        if candidate.split()[0].lower() in NOT_LOCATIONS:
            continue
        return candidate
    return None


def extract_time(text: str) -> tuple[str | None, bool]:
    """Return (time phrase, explicit) for the first clock time or named period."""
    match = CLOCK_TIME_RE.search(text)
    if match:
        return match.group(1), True
    match = PERIOD_RE.search(text)
    if match:
        return match.group(1), False
    return None, False


class HeuristicQueryInterpreter(InterpretationStrategy):
    """Keyword and pattern based interpretation. Never fails."""

    name = "heuristic"

    def interpret(self, text, date, start_time, city):
        clauses = [c.strip() for c in CLAUSE_SPLIT_RE.split(text or "") if c and c.strip()]

        chosen = next((c for c in clauses if classify_activity(c)), None)
        if chosen is None:
            chosen = next((c for c in clauses if CLOCK_TIME_RE.search(c)), None)

        if chosen is None:
            logger.info("[QueryInterpreter] No activity signal, using generic intent")
            return [
                RawIntent(
                    location=extract_location(text or ""),
                    activity=GENERIC_ACTIVITY,
                    time=start_time,
                    source="flexible",
                )
            ]

        time_phrase, explicit = extract_time(chosen)
        return [
            RawIntent(
                location=extract_location(chosen) or extract_location(text),
                activity=chosen,
                time=time_phrase,
                source="fixed" if explicit else "flexible",
            )
        ]


# =============================================================================
# Strategy selection
# =============================================================================


class InterpretationResult(BaseModel):
    intents: list[RawIntent]
    strategy: str


class QueryInterpreter:
    """AI strategy when enabled and configured, heuristic otherwise or on failure."""

    def __init__(
        self,
        ai: InterpretationStrategy | None = None,
        heuristic: InterpretationStrategy | None = None,
        ai_timeout_seconds: float = 15,
    ):
        self.ai = ai
        self.heuristic = heuristic or HeuristicQueryInterpreter()
        self.ai_timeout_seconds = ai_timeout_seconds

    async def interpret(
        self,
        text: str,
        date: str | None,
        start_time: str | None,
        city: CityConfig,
    ) -> InterpretationResult:
        if self.ai is not None:
            try:
                intents = await asyncio.wait_for(
                    asyncio.to_thread(self.ai.interpret, text, date, start_time, city),
                    timeout=self.ai_timeout_seconds,
                )
                logger.info(f"[QueryInterpreter] AI produced {len(intents)} intents")
                return InterpretationResult(intents=intents, strategy=self.ai.name)
            except asyncio.TimeoutError:
                logger.warning(
                    f"[QueryInterpreter] AI timed out after {self.ai_timeout_seconds}s, using heuristic"
                )
            except InterpretationFailure as e:
                logger.warning(f"[QueryInterpreter] AI interpretation failed: {e}, using heuristic")
            except Exception as e:
                logger.warning(f"[QueryInterpreter] Unexpected AI error: {e}, using heuristic")

        intents = self.heuristic.interpret(text, date, start_time, city)
        return InterpretationResult(intents=intents, strategy=self.heuristic.name)
