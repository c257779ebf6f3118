import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BACKEND_ROOT = Path(__file__).resolve().parent
DEFAULT_SEARCH_RADIUS_METERS = 100


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    try:
        return int(float(val))
    except ValueError:
        return default


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _positive_int(val: str | None, default: int) -> int:
    parsed = _as_int(val, default)
    return parsed if parsed > 0 else default


class Settings:
    def __init__(self) -> None:
        self.GOOGLE_API_KEY: str | None = os.getenv("GOOGLE_API_KEY") or None
        self.SEARCH_RADIUS_METERS: int = _positive_int(
            os.getenv("SEARCH_RADIUS_METERS"), DEFAULT_SEARCH_RADIUS_METERS
        )
        self.MAX_SEARCH_RADIUS_METERS: int = _positive_int(os.getenv("MAX_SEARCH_RADIUS_METERS"), 50000)
        self.DISCOVER_COUNTRY_MODE: str = (os.getenv("DISCOVER_COUNTRY_MODE") or "single").strip().lower()
        self.DISCOVER_ALLOWED_COUNTRIES: str = os.getenv("DISCOVER_ALLOWED_COUNTRIES") or "SA"
        self.DEV_LOCATION_OVERRIDE_PATH: str = os.getenv("DEV_LOCATION_OVERRIDE_PATH") or str(
            BACKEND_ROOT / "data" / "temp_location.json"
        )
        self.DATABASE_URL: str = os.getenv("DATABASE_URL") or f"sqlite:///{BACKEND_ROOT / 'app.db'}"
        self.PLACES_RATE_LIMIT_MAX_CALLS: int = _positive_int(os.getenv("PLACES_RATE_LIMIT_MAX_CALLS"), 30)
        self.PLACES_RATE_LIMIT_WINDOW_SECONDS: float = _as_float(
            os.getenv("PLACES_RATE_LIMIT_WINDOW_SECONDS"), 60.0
        )
        self.PLACES_REQUEST_TIMEOUT_SECONDS: float = _as_float(
            os.getenv("PLACES_REQUEST_TIMEOUT_SECONDS"), 10.0
        )
        self.NEARBY_CACHE_TTL_SECONDS: int = _positive_int(os.getenv("NEARBY_CACHE_TTL_SECONDS"), 24 * 3600)
        self.DEV_LOCATION_OVERRIDE_ENABLED: bool = _as_bool(os.getenv("DEV_LOCATION_OVERRIDE_ENABLED"), True)
        self.LOG_LEVEL: str = (os.getenv("LOG_LEVEL") or "INFO").upper()


settings = Settings()
