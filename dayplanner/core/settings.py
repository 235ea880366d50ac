import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    aisuite_model: str = os.getenv("AISUITE_MODEL", "openai:gpt-4o-mini")
    ai_processing_enabled: bool = _env_bool("AI_PROCESSING_ENABLED", "true")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    weather_api_key: str = os.getenv("WEATHER_API_KEY", "")
    mongodb_uri: str = os.getenv("MONGODB_URI", "")
    database_name: str = os.getenv("DATABASE_NAME", "dayplanner_db")
    venue_timeout_seconds: float = float(os.getenv("VENUE_TIMEOUT_SECONDS", "12"))
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "45"))
    ai_timeout_seconds: float = float(os.getenv("AI_TIMEOUT_SECONDS", "15"))
    weather_cache_ttl_seconds: int = int(os.getenv("WEATHER_CACHE_TTL_SECONDS", "1800"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "")


def get_settings() -> Settings:
    return Settings()
