"""
In-process cache of Nearby Search place ids, keyed by location cell + radius.

Only place id lists are stored here; names, ratings and photos live in the
coffee_places table. Entries expire ``ttl_seconds`` after they were fetched
and are overwritten, not merged, by the next successful lookup.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from domain.models import LocationCell
from services.location_cell import quantize

DEFAULT_TTL_SECONDS = 24 * 3600


@dataclass
class NearbySearchCacheEntry:
    lat_cell: float
    lng_cell: float
    radius: float
    place_ids: List[str] = field(default_factory=list)
    fetched_at: float = 0.0


def _make_key(cell: LocationCell, radius: float) -> str:
    return f"{cell.key}:{float(radius)}"


class NearbySearchCache:
    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, NearbySearchCacheEntry] = {}
        self._lock = threading.Lock()

    def get_place_ids(self, lat: float, lng: float, radius: float) -> Optional[List[str]]:
        """
        Return a copy of the cached place ids for the cell, or None when there is
        no entry or it has expired (expired entries are evicted).
        """
        cell = quantize(lat, lng)
        key = _make_key(cell, radius)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return list(entry.place_ids)

    def put_place_ids(self, lat: float, lng: float, radius: float, place_ids: Sequence[str]) -> None:
        """Store place ids for the cell, replacing any previous entry."""
        cell = quantize(lat, lng)
        entry = NearbySearchCacheEntry(
            lat_cell=cell.lat_cell,
            lng_cell=cell.lng_cell,
            radius=float(radius),
            place_ids=list(place_ids),
            fetched_at=self._clock(),
        )
        with self._lock:
            self._entries[_make_key(cell, radius)] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
