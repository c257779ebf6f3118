"""
Discover: resolve nearby cafés from the local store, backfilling from Places.

Per request the service moves through fixed stages:

1. CacheCheck - bounding-box read of coffee_places, trimmed to the radius; any
   remaining rows are returned. A fresh place-id entry in the nearby cache for
   the same cell is read by id.
2. Fallback  - Nearby Search in the anchor and overlay languages.
   Out-of-area ends the request; a rate-limited language contributes nothing.
   Place ids are cached only when every language answered OK or ZERO_RESULTS.
3. Merge     - bilingual merge into canonical places.
4. Persist   - per-row upsert keyed by google_place_id; failures are collected.
5. Verify    - re-read the store; written-but-unreadable data is fatal.
6. Return    - shape rows for the requested display language.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

from sqlalchemy.orm import Session

from domain.errors import PersistenceVerificationFailed
from domain.models import (
    PRIMARY_LANGUAGE,
    SECONDARY_LANGUAGE,
    CafeRecord,
    CanonicalPlace,
    DiscoverCafe,
    Language,
    PersistResult,
    RawProviderPlace,
)
from repositories.cafes import CafesRepository
from services.location_cell import bounding_box, haversine_m, quantize
from services.nearby_cache import NearbySearchCache
from services.place_merger import merge_places
from services.places_client import TRANSIENT_STATUSES, GooglePlacesClient, SearchStatus

logger = logging.getLogger(__name__)

PHOTO_PROXY_PATH = "/api/photo"
LIST_PHOTO_MAX_WIDTH = 400
UNBOUNDED_FALLBACK_LIMIT = 50


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def build_photo_url(photo_reference: Optional[str], max_width: int = LIST_PHOTO_MAX_WIDTH) -> Optional[str]:
    """Point at the server-side photo proxy; the provider key never leaves the server."""
    if not photo_reference:
        return None
    return f"{PHOTO_PROXY_PATH}?photoRef={quote(photo_reference, safe='')}&maxWidth={max_width}"


def _prefer(language: Language, en: Optional[str], ar: Optional[str]) -> Optional[str]:
    if language == Language.AR:
        return ar if ar is not None else en
    return en if en is not None else ar


def within_radius(rows: List[CafeRecord], lat: float, lng: float, radius_m: float) -> List[CafeRecord]:
    """Drop bounding-box corner rows farther than the radius from the origin."""
    return [row for row in rows if haversine_m(lat, lng, row.lat, row.lng) <= radius_m]


def to_discover_cafe(row: CafeRecord, language: Language, origin: Optional[tuple] = None) -> DiscoverCafe:
    distance = None
    if origin is not None:
        distance = round(haversine_m(origin[0], origin[1], row.lat, row.lng), 1)
    return DiscoverCafe(
        id=row.id,
        place_id=row.external_place_id,
        name_en=row.name_en,
        name=_prefer(language, row.name_en, row.name_ar),
        name_ar=row.name_ar,
        address_en=row.address_en,
        address=_prefer(language, row.address_en, row.address_ar),
        address_ar=row.address_ar,
        city_en=row.city_en,
        city=_prefer(language, row.city_en, row.city_ar),
        city_ar=row.city_ar,
        latitude=row.lat,
        longitude=row.lng,
        rating=row.rating,
        reviews=row.review_count,
        photo_url=build_photo_url(row.photo_reference),
        distance=distance,
    )


@dataclass
class FallbackOutcome:
    candidates: List[CanonicalPlace] = field(default_factory=list)
    rate_limited: List[Language] = field(default_factory=list)
    transient: List[Language] = field(default_factory=list)
    calls_made: int = 0

    @property
    def complete(self) -> bool:
        """Every language answered OK or ZERO_RESULTS, so the result may be cached."""
        return not self.rate_limited and not self.transient


class DiscoverService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        places_client: GooglePlacesClient,
        repository: Optional[CafesRepository] = None,
        nearby_cache: Optional[NearbySearchCache] = None,
        languages: Sequence[Language] = (PRIMARY_LANGUAGE, SECONDARY_LANGUAGE),
    ):
        self.session_factory = session_factory
        self.places_client = places_client
        self.repository = repository or CafesRepository()
        self.nearby_cache = nearby_cache or NearbySearchCache()
        self.languages = tuple(languages)

    def resolve_nearby(
        self,
        lat: float,
        lng: float,
        radius_m: float,
        language: Language = PRIMARY_LANGUAGE,
        request_id: Optional[str] = None,
    ) -> List[DiscoverCafe]:
        request_id = request_id or new_request_id()
        bbox = bounding_box(lat, lng, radius_m)
        cell = quantize(lat, lng)
        logger.info(
            "[discover][%s] effectiveLatLng=(%s, %s) cell=%s radius=%sm lang=%s",
            request_id, lat, lng, cell.key, radius_m, language.value,
        )

        with self.session_factory() as session:
            boxed = self.repository.find_in_bounds(session, bbox)
            rows = within_radius(boxed, lat, lng, radius_m)
            if rows:
                logger.info(
                    "[discover][%s] dataSource=store boxed=%d withinRadius=%d providerCalls=0",
                    request_id, len(boxed), len(rows),
                )
                return self._shape(rows, language, lat, lng)

            cached_ids = self.nearby_cache.get_place_ids(lat, lng, radius_m)
            if cached_ids is not None:
                rows = self.repository.find_by_place_ids(session, cached_ids)
                if rows or not cached_ids:
                    logger.info(
                        "[discover][%s] dataSource=nearby-cache ids=%d rows=%d providerCalls=0",
                        request_id, len(cached_ids), len(rows),
                    )
                    return self._shape(rows, language, lat, lng)

            outcome = self._fallback(lat, lng, radius_m, request_id)
            if len(outcome.rate_limited) == len(self.languages):
                logger.warning("[discover][%s] all languages rate-limited; returning empty results", request_id)
                return []

            results = self._persist(session, outcome.candidates, request_id)
            if outcome.complete:
                self.nearby_cache.put_place_ids(
                    lat, lng, radius_m, [c.external_place_id for c in outcome.candidates]
                )

            rows = self._verify(session, lat, lng, radius_m, outcome.candidates, results, request_id)
            logger.info(
                "[discover][%s] dataSource=provider candidates=%d rows=%d providerCalls=%d",
                request_id, len(outcome.candidates), len(rows), outcome.calls_made,
            )
            return self._shape(rows, language, lat, lng)

    def _fallback(self, lat: float, lng: float, radius_m: float, request_id: str) -> FallbackOutcome:
        outcome = FallbackOutcome()
        by_language: Dict[Language, List[RawProviderPlace]] = {}
        for lang in self.languages:
            result = self.places_client.fetch_nearby(lat, lng, radius_m, lang, request_id=request_id)
            match result.status:
                case SearchStatus.OK | SearchStatus.SOFT_EMPTY:
                    outcome.calls_made += 1
                    by_language[lang] = result.places
                    if result.provider_status in TRANSIENT_STATUSES:
                        outcome.transient.append(lang)
                case SearchStatus.RATE_LIMITED:
                    logger.warning("[discover][%s] Places soft-rate-limit hit during %s fallback", request_id, lang.value)
                    outcome.rate_limited.append(lang)
                case SearchStatus.OUT_OF_AREA:
                    logger.info("[discover][%s] out of service area (%s)", request_id, lang.value)
                    result.raise_for_status()

        primary = by_language.get(self.languages[0], [])
        secondary: List[RawProviderPlace] = []
        for lang in self.languages[1:]:
            secondary.extend(by_language.get(lang, []))
        outcome.candidates = merge_places(primary, secondary)
        return outcome

    def _persist(self, session: Session, candidates: List[CanonicalPlace], request_id: str) -> List[PersistResult]:
        results: List[PersistResult] = []
        for place in candidates:
            result = self.repository.upsert_canonical(session, place)
            if not result.success:
                logger.error(
                    "[discover][%s] persist %s failed for %s: %s",
                    request_id, result.op, result.place_id, result.error,
                )
            results.append(result)
        if results:
            ok = sum(1 for r in results if r.success)
            logger.info("[discover][%s] persist summary: %d success, %d failed", request_id, ok, len(results) - ok)
        return results

    def _verify(
        self,
        session: Session,
        lat: float,
        lng: float,
        radius_m: float,
        candidates: List[CanonicalPlace],
        results: List[PersistResult],
        request_id: str,
    ) -> List[CafeRecord]:
        unbounded = self.repository.list_any(session, limit=UNBOUNDED_FALLBACK_LIMIT)
        boxed = self.repository.find_in_bounds(session, bounding_box(lat, lng, radius_m))
        bounded = within_radius(boxed, lat, lng, radius_m)
        if bounded:
            return bounded
        if not candidates:
            return []
        if not unbounded:
            details = {
                "persist_candidates": len(candidates),
                "persist_results": [r.__dict__ for r in results],
            }
            logger.error("[discover][%s] persisted candidates but store is empty: %s", request_id, details)
            raise PersistenceVerificationFailed("Persisted cafés could not be read back", details=details)

        persisted_ids = [r.place_id for r in results if r.success and r.place_id]
        corrective = self.repository.find_by_place_ids(session, persisted_ids)
        if corrective:
            logger.warning(
                "[discover][%s] bounded re-read empty; returning %d rows persisted by this request",
                request_id, len(corrective),
            )
            return corrective
        logger.warning(
            "[discover][%s] bounded re-read empty; falling back to %d most recent rows",
            request_id, len(unbounded),
        )
        return unbounded

    def _shape(self, rows: List[CafeRecord], language: Language, lat: float, lng: float) -> List[DiscoverCafe]:
        cafes = [to_discover_cafe(row, language, origin=(lat, lng)) for row in rows]
        cafes.sort(key=lambda c: c.distance if c.distance is not None else float("inf"))
        return cafes
