"""
Core domain models for the Discover café pipeline.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import math


class Language(str, Enum):
    """Languages the Discover pipeline fetches and displays."""
    EN = "en"
    AR = "ar"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Language":
        """Anything that is not Arabic falls back to English."""
        if value and value.strip().lower().startswith("ar"):
            return cls.AR
        return cls.EN


# Anchor language seeds identity and wins field conflicts; overlay only fills gaps.
PRIMARY_LANGUAGE = Language.EN
SECONDARY_LANGUAGE = Language.AR


def as_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None for anything else (bools included)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def as_count(value: Any) -> Optional[int]:
    number = as_number(value)
    return int(number) if number is not None else None


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class LocationCell:
    """A ~110m grid cell: both coordinates rounded to 3 decimals."""
    lat_cell: float
    lng_cell: float

    @property
    def key(self) -> str:
        return f"{self.lat_cell}:{self.lng_cell}"


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


@dataclass
class AddressComponent:
    long_name: str
    types: List[str] = field(default_factory=list)


@dataclass
class RawProviderPlace:
    """
    One Nearby Search result for one language, mapped into a typed intermediate
    shape. Never persisted verbatim.
    """
    language: Language
    place_id: Optional[str]
    name: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    photo_reference: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    vicinity: Optional[str] = None
    formatted_address: Optional[str] = None
    compound_code: Optional[str] = None
    global_code: Optional[str] = None
    address_components: List[AddressComponent] = field(default_factory=list)
    country: Optional[str] = None  # ISO-2, filled by the geofence check

    @classmethod
    def from_nearby_result(cls, item: Dict[str, Any], language: Language) -> "RawProviderPlace":
        """Map a classic Nearby Search result (``place_id``, ``geometry.location``)."""
        geometry = item.get("geometry") or {}
        location = geometry.get("location") or {}
        photos = item.get("photos") or []
        plus_code = item.get("plus_code") or {}
        components = [
            AddressComponent(long_name=str(c.get("long_name")), types=list(c.get("types") or []))
            for c in item.get("address_components") or []
            if isinstance(c, dict) and c.get("long_name")
        ]
        return cls(
            language=language,
            place_id=as_text(item.get("place_id")),
            name=as_text(item.get("name")),
            lat=as_number(location.get("lat")),
            lng=as_number(location.get("lng")),
            photo_reference=as_text(photos[0].get("photo_reference")) if photos and isinstance(photos[0], dict) else None,
            rating=as_number(item.get("rating")),
            review_count=as_count(item.get("user_ratings_total")),
            vicinity=as_text(item.get("vicinity")),
            formatted_address=as_text(item.get("formatted_address")),
            compound_code=as_text(plus_code.get("compound_code")),
            global_code=as_text(plus_code.get("global_code")),
            address_components=components,
        )

    def address_texts(self) -> List[str]:
        """Free-text address fields, locality first."""
        return [t for t in (self.vicinity, self.formatted_address) if t]

    def plus_code_texts(self) -> List[str]:
        """Plus code fields; the compound code ends with the locality and country."""
        return [t for t in (self.compound_code, self.global_code) if t]


@dataclass
class CanonicalPlace:
    """
    The only shape allowed into persistent storage.

    Valid iff ``external_place_id`` is non-empty and ``lat``/``lng`` are finite.
    """
    external_place_id: str
    lat: Optional[float]
    lng: Optional[float]
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    photo_reference: Optional[str] = None
    city_en: Optional[str] = None
    city_ar: Optional[str] = None
    country: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.external_place_id)
            and as_number(self.lat) is not None
            and as_number(self.lng) is not None
        )


@dataclass
class CafeRecord:
    """A persisted coffee_places row as read back from the durable store."""
    id: str
    external_place_id: str
    lat: float
    lng: float
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    address_en: Optional[str] = None
    address_ar: Optional[str] = None
    city_en: Optional[str] = None
    city_ar: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    photo_reference: Optional[str] = None
    country: Optional[str] = None


@dataclass
class DiscoverCafe:
    """A café shaped for one display language."""
    id: str
    place_id: str
    name_en: Optional[str]
    name: Optional[str]
    name_ar: Optional[str]
    address_en: Optional[str]
    address: Optional[str]
    address_ar: Optional[str]
    city_en: Optional[str]
    city: Optional[str]
    city_ar: Optional[str]
    latitude: float
    longitude: float
    rating: Optional[float]
    reviews: Optional[int]
    photo_url: Optional[str]
    distance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "placeId": self.place_id,
            "nameEn": self.name_en,
            "name": self.name,
            "nameAr": self.name_ar,
            "addressEn": self.address_en,
            "address": self.address,
            "addressAr": self.address_ar,
            "cityEn": self.city_en,
            "city": self.city,
            "cityAr": self.city_ar,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "rating": self.rating,
            "reviews": self.reviews,
            "photoUrl": self.photo_url,
            "distance": self.distance,
        }


@dataclass
class PersistResult:
    """Outcome of one row upsert."""
    place_id: Optional[str]
    op: str  # "insert" | "update" | "skip"
    success: bool
    error: Optional[str] = None
