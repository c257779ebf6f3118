"""
Country configuration and detection for Discover geofencing.

Server-side only; clients have no control over the allow-list.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from domain.models import RawProviderPlace
from settings import settings

logger = logging.getLogger(__name__)


class CountryMode(str, Enum):
    GLOBAL = "global"
    SINGLE = "single"
    MULTI = "multi"


@dataclass(frozen=True)
class DiscoverConfig:
    mode: CountryMode = CountryMode.SINGLE
    allowed_countries: List[str] = field(default_factory=lambda: ["SA"])  # ISO-2

    @property
    def is_global(self) -> bool:
        return self.mode == CountryMode.GLOBAL or not self.allowed_countries

    def describe(self) -> str:
        return "ALL" if self.is_global else ",".join(self.allowed_countries)


# English and Arabic names mapped to ISO-2. Longer names are tried first so
# "united arab emirates" is not mistaken for a shorter entry.
COUNTRY_MAP: Dict[str, str] = {
    "saudi arabia": "SA",
    "kingdom of saudi arabia": "SA",
    "ksa": "SA",
    "السعودية": "SA",
    "المملكة العربية السعودية": "SA",
    "united arab emirates": "AE",
    "uae": "AE",
    "الإمارات": "AE",
    "الإمارات العربية المتحدة": "AE",
    "egypt": "EG",
    "مصر": "EG",
    "united kingdom": "UK",
    "uk": "UK",
    "england": "UK",
    "britain": "UK",
    "united states": "US",
    "united states of america": "US",
    "usa": "US",
    "us": "US",
}

_LATIN = re.compile(r"^[a-z ]+$")
ARABIC_LETTERS = "\u0621-\u064A\u0671-\u06D3"
# Attached conjunction, preposition or article: "بالسعودية", "ومصر", "لمصر"
ARABIC_PREFIXES = "(?:وال|بال|لل|ال|ب|و|ل)?"


def _compile_patterns() -> List[tuple]:
    patterns = []
    for name in sorted(COUNTRY_MAP, key=len, reverse=True):
        if _LATIN.match(name):
            # word boundaries so "us" does not match "business"
            pattern = re.compile(r"(?<![a-z])" + re.escape(name) + r"(?![a-z])", re.IGNORECASE)
        else:
            # "مصر" must not match inside "مصرف"
            pattern = re.compile(
                rf"(?<![{ARABIC_LETTERS}]){ARABIC_PREFIXES}" + re.escape(name) + rf"(?![{ARABIC_LETTERS}])"
            )
        patterns.append((pattern, COUNTRY_MAP[name]))
    return patterns


_PATTERNS = _compile_patterns()


def load_discover_config(mode: Optional[str] = None, allowed: Optional[str] = None) -> DiscoverConfig:
    """Build the config from settings (or explicit overrides, for tests)."""
    raw_mode = (mode if mode is not None else settings.DISCOVER_COUNTRY_MODE).strip().lower()
    raw_allowed = allowed if allowed is not None else settings.DISCOVER_ALLOWED_COUNTRIES
    try:
        country_mode = CountryMode(raw_mode)
    except ValueError:
        logger.warning("Unknown DISCOVER_COUNTRY_MODE=%r; using 'single'", raw_mode)
        country_mode = CountryMode.SINGLE

    codes = [normalize_country(c) for c in raw_allowed.split(",") if c.strip()]
    if country_mode == CountryMode.GLOBAL:
        codes = []
    elif country_mode == CountryMode.SINGLE and len(codes) > 1:
        logger.warning("DISCOVER_COUNTRY_MODE=single with %d countries; using %s only", len(codes), codes[0])
        codes = codes[:1]
    return DiscoverConfig(mode=country_mode, allowed_countries=codes)


def normalize_country(country: str) -> str:
    """Normalize a country name or code to ISO-2."""
    normalized = country.strip().lower()
    return COUNTRY_MAP.get(normalized) or country.strip().upper()


def detect_country_from_text(text: str) -> Optional[str]:
    for pattern, code in _PATTERNS:
        if pattern.search(text):
            return code
    return None


def _first_detected(texts: List[str]) -> Optional[str]:
    for text in texts:
        code = detect_country_from_text(text)
        if code:
            return code
    return None


def detect_country_from_place(place: RawProviderPlace, config: Optional[DiscoverConfig] = None) -> Optional[str]:
    """
    Address text first, plus code as fallback.

    When the two disagree and the plus code names an allowed country, the plus
    code wins: free-text vicinities mention landmarks ("US Embassy Rd") that are
    not the country the café is in.
    """
    from_address = _first_detected(place.address_texts())
    from_plus_code = _first_detected(place.plus_code_texts())
    if (
        config is not None
        and from_address
        and from_plus_code
        and from_address != from_plus_code
        and is_country_allowed(from_plus_code, config)
    ):
        return from_plus_code
    return from_address or from_plus_code


def is_country_allowed(country: Optional[str], config: DiscoverConfig) -> bool:
    if config.is_global:
        return True
    if not country:
        # Unknown countries are rejected in restricted modes
        return False
    return normalize_country(country) in config.allowed_countries
