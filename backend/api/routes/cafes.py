"""
Cafés API routes.

Discover listing plus the photo proxy that keeps the provider key server-side.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from db import SessionLocal
from domain.errors import (
    ConfigurationError,
    OutOfServiceArea,
    PersistenceVerificationFailed,
    ProviderError,
    RateLimitExceeded,
)
from domain.models import Language
from services.country_filter import load_discover_config
from services.dev_location import resolve_coordinates
from services.discover import DiscoverService, new_request_id
from services.nearby_cache import NearbySearchCache
from services.places_client import GooglePlacesClient
from services.rate_limiter import SlidingWindowRateLimiter
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class CafeResponse(BaseModel):
    id: str
    placeId: str
    nameEn: Optional[str] = None
    name: Optional[str] = None
    nameAr: Optional[str] = None
    addressEn: Optional[str] = None
    address: Optional[str] = None
    addressAr: Optional[str] = None
    cityEn: Optional[str] = None
    city: Optional[str] = None
    cityAr: Optional[str] = None
    latitude: float
    longitude: float
    rating: Optional[float] = None
    reviews: Optional[int] = None
    photoUrl: Optional[str] = None
    distance: Optional[float] = Field(default=None, description="Meters from the effective location")


_discover_service: Optional[DiscoverService] = None


def build_discover_service() -> DiscoverService:
    """Wire the Discover service once: one limiter and one nearby cache per process."""
    limiter = SlidingWindowRateLimiter(
        max_calls=settings.PLACES_RATE_LIMIT_MAX_CALLS,
        window_seconds=settings.PLACES_RATE_LIMIT_WINDOW_SECONDS,
    )
    client = GooglePlacesClient(
        api_key=settings.GOOGLE_API_KEY,
        rate_limiter=limiter,
        config=load_discover_config(),
        timeout=settings.PLACES_REQUEST_TIMEOUT_SECONDS,
    )
    return DiscoverService(
        session_factory=SessionLocal,
        places_client=client,
        nearby_cache=NearbySearchCache(ttl_seconds=settings.NEARBY_CACHE_TTL_SECONDS),
    )


def get_discover_service() -> DiscoverService:
    global _discover_service
    if _discover_service is None:
        _discover_service = build_discover_service()
    return _discover_service


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": code, "message": message})


def resolve_radius(raw: Optional[str]) -> int:
    """Request radius in meters; invalid values fall back to the configured default."""
    try:
        radius = float(raw) if raw is not None else 0.0
    except ValueError:
        radius = 0.0
    if radius != radius or radius <= 0:
        return settings.SEARCH_RADIUS_METERS
    return int(min(radius, settings.MAX_SEARCH_RADIUS_METERS))


@router.get("/cafes", response_model=List[CafeResponse])
async def list_nearby_cafes(request: Request, lang: Optional[str] = None):
    """Discover cafés near the caller (or the dev override location)."""
    request_id = new_request_id()
    params = request.query_params
    language = Language.parse(lang)
    radius_m = resolve_radius(params.get("radius_m") or params.get("radius"))

    try:
        location = resolve_coordinates(params, request_id=request_id)
        service = get_discover_service()
        cafes = await run_in_threadpool(
            service.resolve_nearby,
            location.lat,
            location.lng,
            radius_m,
            language,
            request_id,
        )
    except RateLimitExceeded:
        logger.warning("[discover][%s] rate limited; returning empty results", request_id)
        return []
    except OutOfServiceArea as exc:
        logger.info("[discover][%s] out of service area: %s", request_id, exc.details)
        raise _error(422, exc.code, "Discover is not available in your region")
    except ProviderError as exc:
        logger.error("[discover][%s] provider failure: %s (status=%s)", request_id, exc.message, exc.status)
        raise _error(502, exc.code, "Failed to fetch cafes from the places provider")
    except PersistenceVerificationFailed as exc:
        logger.error("[discover][%s] persistence verification failed: %s", request_id, exc.to_dict())
        raise _error(500, exc.code, "Failed to fetch cafes")
    except ConfigurationError as exc:
        logger.error("[discover][%s] configuration error: %s", request_id, exc.message)
        status_code = 503 if exc.service_unavailable else 500
        raise _error(status_code, exc.code, exc.message if not exc.service_unavailable else "Discover is not configured")
    except Exception:
        logger.exception("[discover][%s] unexpected failure", request_id)
        raise _error(500, "DISCOVER_INTERNAL", "Failed to fetch cafes")

    return [CafeResponse(**cafe.to_dict()) for cafe in cafes]


@router.get("/photo")
async def photo_proxy(photoRef: Optional[str] = None, maxWidth: int = 1000):
    """Stream a provider photo without exposing the API key to clients."""
    if not photoRef:
        raise _error(400, "PHOTO_MISSING_REF", "Missing photoRef")
    client = get_discover_service().places_client
    try:
        payload = await run_in_threadpool(client.fetch_photo, photoRef, maxWidth)
    except ConfigurationError as exc:
        raise _error(503, exc.code, "Photo proxy is not configured")
    except ProviderError as exc:
        logger.warning("[photo] provider failure: %s", exc.message)
        raise _error(502, exc.code, "Failed to fetch photo")

    if payload is None:
        # Rate limited: no body; previously cached copies keep serving.
        return Response(status_code=204, headers={"Cache-Control": "public, max-age=60"})
    return Response(
        content=payload.content,
        media_type=payload.content_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
