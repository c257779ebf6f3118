"""
Development location override.

Lets developers pin Discover to a fixed coordinate through a JSON file
(``{"enabled": true, "lat": 24.71, "lng": 46.67}``) on machines without
real device geolocation. Server-side only.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from domain.errors import ConfigurationError
from domain.models import as_number
from settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationOverride:
    lat: float
    lng: float


@dataclass(frozen=True)
class EffectiveLocation:
    lat: float
    lng: float
    overridden: bool


def load_location_override(path: Optional[str] = None) -> Optional[LocationOverride]:
    """Return the active override, or None when the file is absent, disabled or invalid."""
    override_path = Path(path or settings.DEV_LOCATION_OVERRIDE_PATH)
    if not override_path.exists():
        return None
    try:
        data = json.loads(override_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("[dev_location] failed to load %s: %s", override_path, exc)
        return None
    if not isinstance(data, dict) or not data.get("enabled"):
        return None
    lat = as_number(data.get("lat"))
    lng = as_number(data.get("lng"))
    if lat is None or lng is None:
        logger.warning("[dev_location] invalid lat/lng in %s", override_path)
        return None
    return LocationOverride(lat=lat, lng=lng)


def _parse_coordinate(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return as_number(float(value))
    except (TypeError, ValueError):
        return None


def resolve_coordinates(
    query: Mapping[str, Any],
    request_id: str = "-",
    override_path: Optional[str] = None,
) -> EffectiveLocation:
    """
    Pick the coordinates a Discover request runs against.

    Explicit ``lat``/``lng`` query values win when both parse as finite
    numbers; otherwise the dev override is used. With neither, raise
    ``ConfigurationError`` rather than defaulting to some location.
    """
    lat = _parse_coordinate(query.get("lat"))
    lng = _parse_coordinate(query.get("lng"))
    if lat is not None and lng is not None and -90 <= lat <= 90 and -180 <= lng <= 180:
        return EffectiveLocation(lat=lat, lng=lng, overridden=False)

    override = load_location_override(override_path) if settings.DEV_LOCATION_OVERRIDE_ENABLED else None
    if override is not None:
        logger.info(
            "[dev_location][%s] ACTIVE: using (%s, %s) instead of (%s, %s)",
            request_id, override.lat, override.lng, query.get("lat", "<none>"), query.get("lng", "<none>"),
        )
        return EffectiveLocation(lat=override.lat, lng=override.lng, overridden=True)

    raise ConfigurationError(
        "Missing lat/lng: provide coordinates or enable the dev location override",
        details={"lat": query.get("lat"), "lng": query.get("lng")},
    )
