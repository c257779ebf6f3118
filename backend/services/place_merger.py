"""
Bilingual merge of Nearby Search results into canonical places.

The anchor (primary language) pass seeds identity and coordinates. The
overlay (secondary language) pass only fills fields that are still empty:
once a field is set, nothing overwrites it. Entries without an id or finite
coordinates never leave this module.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from domain.models import CanonicalPlace, Language, RawProviderPlace, as_number

logger = logging.getLogger(__name__)

CITY_COMPONENT_TYPES = ("locality", "administrative_area_level_2", "administrative_area_level_1")
_VICINITY_SPLIT = re.compile(r"[,،]")


def pick_city(place: RawProviderPlace) -> Optional[str]:
    """City from address components, else the last segment of the vicinity."""
    for wanted in CITY_COMPONENT_TYPES:
        for component in place.address_components:
            if wanted in component.types and component.long_name:
                return component.long_name
    if place.vicinity:
        parts = [p.strip() for p in _VICINITY_SPLIT.split(place.vicinity) if p.strip()]
        if len(parts) > 1:
            return parts[-1]
    return None


def _name_field(language: Language) -> str:
    return "name_ar" if language == Language.AR else "name_en"


def _city_field(language: Language) -> str:
    return "city_ar" if language == Language.AR else "city_en"


def _set_if_empty(entry: CanonicalPlace, attr: str, value: Any) -> None:
    """First writer wins: only populate a field that is currently unset."""
    if value is None:
        return
    if getattr(entry, attr) is None:
        setattr(entry, attr, value)


def _fill(entry: CanonicalPlace, place: RawProviderPlace) -> None:
    _set_if_empty(entry, _name_field(place.language), place.name)
    _set_if_empty(entry, _city_field(place.language), pick_city(place))
    _set_if_empty(entry, "photo_reference", place.photo_reference)
    _set_if_empty(entry, "rating", place.rating)
    _set_if_empty(entry, "review_count", place.review_count)
    _set_if_empty(entry, "country", place.country)
    _set_if_empty(entry, "lat", as_number(place.lat))
    _set_if_empty(entry, "lng", as_number(place.lng))


def _has_coordinates(place: RawProviderPlace) -> bool:
    return as_number(place.lat) is not None and as_number(place.lng) is not None


def merge_places(
    primary: Optional[Iterable[RawProviderPlace]],
    secondary: Optional[Iterable[RawProviderPlace]],
) -> List[CanonicalPlace]:
    """Merge anchor-language and overlay-language results into valid canonical places."""
    merged: Dict[str, CanonicalPlace] = {}
    dropped = 0

    for place in primary or []:
        if not place.place_id or not _has_coordinates(place):
            dropped += 1
            logger.debug("merge: dropping anchor result without id/coordinates: %r", place.place_id)
            continue
        entry = merged.get(place.place_id)
        if entry is None:
            entry = CanonicalPlace(external_place_id=place.place_id, lat=None, lng=None)
            merged[place.place_id] = entry
        _fill(entry, place)

    for place in secondary or []:
        if not place.place_id:
            dropped += 1
            continue
        entry = merged.get(place.place_id)
        if entry is not None:
            _fill(entry, place)
            continue
        if not _has_coordinates(place):
            dropped += 1
            logger.debug("merge: dropping overlay-only result without coordinates: %s", place.place_id)
            continue
        entry = CanonicalPlace(external_place_id=place.place_id, lat=None, lng=None)
        _fill(entry, place)
        merged[place.place_id] = entry

    out = [entry for entry in merged.values() if entry.is_valid]
    dropped += len(merged) - len(out)
    if dropped:
        logger.info("merge: %d merged, %d dropped as invalid", len(out), dropped)
    return out
