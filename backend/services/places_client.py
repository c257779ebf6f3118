"""
Google Places client for the Discover pipeline.

One Nearby Search request per language, routed through the shared rate
limiter, mapped into ``RawProviderPlace`` and geofenced against the
configured country allow-list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

from domain.errors import ConfigurationError, OutOfServiceArea, ProviderError, RateLimitExceeded
from domain.models import Language, RawProviderPlace
from services.country_filter import (
    DiscoverConfig,
    detect_country_from_place,
    is_country_allowed,
    load_discover_config,
)
from services.rate_limiter import RATE_LIMITED, SlidingWindowRateLimiter

NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACE_PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"
PLACE_TYPE = "cafe"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Provider statuses that mean "nothing usable, but not an error".
SOFT_EMPTY_STATUSES = {"ZERO_RESULTS", "UNKNOWN_ERROR"}
# Soft, but not a definitive answer for the area; never cached.
TRANSIENT_STATUSES = {"UNKNOWN_ERROR"}
HARD_FAILURE_STATUSES = {"REQUEST_DENIED", "INVALID_REQUEST"}

logger = logging.getLogger(__name__)


class SearchStatus(str, Enum):
    OK = "ok"
    SOFT_EMPTY = "soft_empty"
    RATE_LIMITED = "rate_limited"
    OUT_OF_AREA = "out_of_area"


@dataclass
class NearbySearchResult:
    """Outcome of one Nearby Search call for one language."""
    status: SearchStatus
    language: Language
    places: List[RawProviderPlace] = field(default_factory=list)
    provider_status: Optional[str] = None
    filtered_out: int = 0

    def raise_for_status(self) -> None:
        """Raise the exception counterpart of a rate-limited or out-of-area outcome."""
        if self.status == SearchStatus.RATE_LIMITED:
            raise RateLimitExceeded(f"Places rate limit reached ({self.language.value})")
        if self.status == SearchStatus.OUT_OF_AREA:
            raise OutOfServiceArea(
                "No results in an allowed country",
                details={"language": self.language.value, "filtered_out": self.filtered_out},
            )


@dataclass
class PhotoPayload:
    content: bytes
    content_type: str


def sanitize_url(url: str, params: Dict[str, Any]) -> str:
    """Render a request URL for logs without the API key."""
    safe = {k: v for k, v in params.items() if k != "key"}
    return requests.Request("GET", url, params=safe).prepare().url or url


class GooglePlacesClient:
    def __init__(
        self,
        api_key: Optional[str],
        rate_limiter: SlidingWindowRateLimiter,
        config: Optional[DiscoverConfig] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        nearby_url: str = NEARBY_SEARCH_URL,
        photo_url: str = PLACE_PHOTO_URL,
    ):
        self.api_key = api_key
        self.rate_limiter = rate_limiter
        self.config = config or load_discover_config()
        self.session = session or requests.Session()
        self.timeout = timeout
        self.nearby_url = nearby_url
        self.photo_url = photo_url
        self.logger = logging.getLogger(__name__)

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not configured", service_unavailable=True)
        return self.api_key

    def _get(self, url: str, params: Dict[str, Any], tag: str):
        """GET through the rate limiter; returns RATE_LIMITED or a Response."""
        try:
            return self.rate_limiter.attempt_call(
                self.session.get, url, params=params, timeout=self.timeout, tag=tag
            )
        except requests.Timeout as exc:
            raise ProviderError(f"{tag} request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise ProviderError(f"{tag} request failed: {exc}") from exc

    def fetch_nearby(
        self,
        lat: float,
        lng: float,
        radius_m: float,
        language: Language,
        request_id: str = "-",
    ) -> NearbySearchResult:
        """
        Run one Nearby Search and classify the outcome.

        Soft outcomes come back as a ``NearbySearchResult`` status; transport,
        HTTP, REQUEST_DENIED and malformed payloads raise ``ProviderError``.
        """
        params = {
            "location": f"{lat},{lng}",
            "radius": int(radius_m),
            "type": PLACE_TYPE,
            "language": language.value,
            "key": self._require_key(),
        }
        self.logger.info(
            "[places][%s] NearbySearch request url=%s", request_id, sanitize_url(self.nearby_url, params)
        )
        resp = self._get(self.nearby_url, params, tag="Nearby")
        if resp is RATE_LIMITED:
            return NearbySearchResult(status=SearchStatus.RATE_LIMITED, language=language)

        if not resp.ok:
            raise ProviderError(
                f"Nearby Search HTTP {resp.status_code}", status=resp.status_code, body=resp.text[:500]
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError("Nearby Search returned invalid JSON", status=resp.status_code) from exc
        if not isinstance(data, dict):
            raise ProviderError("Nearby Search returned an unexpected payload", status=resp.status_code)

        provider_status = data.get("status")
        self.logger.info("[places][%s] NearbySearch response status=%s", request_id, provider_status or "(no status)")
        if provider_status in HARD_FAILURE_STATUSES:
            message = data.get("error_message") or provider_status
            raise ProviderError(f"{provider_status}: {message}", status=resp.status_code)
        if provider_status == "OVER_QUERY_LIMIT":
            self.logger.warning("[places][%s] provider quota exhausted (%s)", request_id, language.value)
            return NearbySearchResult(status=SearchStatus.RATE_LIMITED, language=language, provider_status=provider_status)
        if provider_status in SOFT_EMPTY_STATUSES:
            self.logger.warning(
                "[places][%s] %s at (%s, %s) radius=%sm; returning empty",
                request_id, provider_status, lat, lng, radius_m,
            )
            return NearbySearchResult(status=SearchStatus.SOFT_EMPTY, language=language, provider_status=provider_status)

        results = data.get("results", [])
        if not isinstance(results, list):
            raise ProviderError("Nearby Search 'results' is not a list", status=resp.status_code)

        mapped = [RawProviderPlace.from_nearby_result(item, language) for item in results if isinstance(item, dict)]
        return self._apply_geofence(mapped, language, provider_status, request_id)

    def _apply_geofence(
        self,
        mapped: List[RawProviderPlace],
        language: Language,
        provider_status: Optional[str],
        request_id: str,
    ) -> NearbySearchResult:
        for place in mapped:
            place.country = detect_country_from_place(place, self.config)
        if self.config.is_global or not mapped:
            status = SearchStatus.OK if mapped else SearchStatus.SOFT_EMPTY
            return NearbySearchResult(status=status, language=language, places=mapped, provider_status=provider_status)

        accepted: List[RawProviderPlace] = []
        for place in mapped:
            allowed = is_country_allowed(place.country, self.config)
            self.logger.debug(
                "[places][%s] placeId=%s country=%s accepted=%s",
                request_id, place.place_id, place.country or "UNKNOWN", allowed,
            )
            if allowed:
                accepted.append(place)

        filtered_out = len(mapped) - len(accepted)
        if filtered_out:
            self.logger.info(
                "[places][%s] placesFilteredOutByCountry=%d (%d -> %d) allowed=%s",
                request_id, filtered_out, len(mapped), len(accepted), self.config.describe(),
            )
        if not accepted:
            return NearbySearchResult(
                status=SearchStatus.OUT_OF_AREA,
                language=language,
                provider_status=provider_status,
                filtered_out=filtered_out,
            )
        return NearbySearchResult(
            status=SearchStatus.OK,
            language=language,
            places=accepted,
            provider_status=provider_status,
            filtered_out=filtered_out,
        )

    def search(
        self,
        lat: float,
        lng: float,
        radius_m: float,
        language: Language,
        request_id: str = "-",
    ) -> List[RawProviderPlace]:
        """Exception-style wrapper: raises RateLimitExceeded / OutOfServiceArea."""
        result = self.fetch_nearby(lat, lng, radius_m, language, request_id=request_id)
        result.raise_for_status()
        return result.places

    def fetch_photo(self, photo_reference: str, max_width: int = 1000) -> Optional[PhotoPayload]:
        """Fetch photo bytes for a photo reference; None when rate-limited."""
        params = {
            "maxwidth": max_width,
            "photoreference": photo_reference,
            "key": self._require_key(),
        }
        resp = self._get(self.photo_url, params, tag="Photos")
        if resp is RATE_LIMITED:
            return None
        if not resp.ok:
            raise ProviderError(f"Photo fetch HTTP {resp.status_code}", status=resp.status_code)
        return PhotoPayload(
            content=resp.content,
            content_type=resp.headers.get("content-type") or "image/jpeg",
        )
