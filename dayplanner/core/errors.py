"""
Exceptions raised by the planning pipeline and its service adapters.

Every error carries the HTTP status the API layer should answer with when it
escapes the pipeline. Most of them never do: the pipeline recovers from them
locally (heuristic fallback, unresolved blocks, safe weather defaults).
"""


class PlannerError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InterpretationFailure(PlannerError):
    """AI interpretation was unavailable, timed out or returned unusable output."""

    status_code = 502


class LocationUnresolved(PlannerError):
    """A location phrase matched nothing; only raised in strict mode."""

    status_code = 422

    def __init__(self, phrase: str, suggestions: list[str] | None = None):
        self.phrase = phrase
        self.suggestions = suggestions or []
        message = f"Could not resolve location '{phrase}'"
        if self.suggestions:
            message += f" (did you mean: {', '.join(self.suggestions)}?)"
        super().__init__(message)


class VenueNotFound(PlannerError):
    status_code = 404

    def __init__(self, activity: str):
        self.activity = activity
        super().__init__(f"could not find a match for {activity}")


class ExternalServiceError(PlannerError):
    status_code = 502


class ExternalServiceTimeout(ExternalServiceError):
    status_code = 504


class PlacesServiceError(ExternalServiceError):
    pass


class WeatherServiceError(ExternalServiceError):
    pass


class GeocodeServiceError(ExternalServiceError):
    pass


class UnknownCityError(PlannerError):
    status_code = 400

    def __init__(self, city: str):
        self.city = city
        super().__init__(f"Unsupported city '{city}'")


class StorageError(PlannerError):
    status_code = 503


class PlanningFailed(PlannerError):
    """No time block could be produced for the request."""

    status_code = 500
