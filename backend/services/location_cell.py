"""Coordinate helpers: grid cells, bounding boxes and great-circle distance."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from domain.models import BoundingBox, LocationCell

CELL_DECIMALS = 3
METERS_PER_DEGREE_LAT = 111000.0
EARTH_RADIUS_M = 6371000.0


def _round_half_up(value: float, decimals: int = CELL_DECIMALS) -> float:
    # Decimal(str(x)) avoids binary artefacts such as 2.0005 -> 2.000499999...
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def quantize(lat: float, lng: float) -> LocationCell:
    """
    Round coordinates to a ~110m cell used as a cache/dedup key.

    Halves round away from zero on both sides of the equator and meridian, so
    -2.0005 becomes -2.001, not the -2.000 that rounding toward +inf would give.
    Cells stay symmetric around zero; keys are only compared within this process.

    Example: quantize(24.7136, 46.6753) -> LocationCell(24.714, 46.675)
    """
    return LocationCell(lat_cell=_round_half_up(lat), lng_cell=_round_half_up(lng))


def bounding_box(lat: float, lng: float, radius_m: float) -> BoundingBox:
    """Degree bounds for a radius; the longitude span widens with latitude."""
    lat_delta = radius_m / METERS_PER_DEGREE_LAT
    lng_delta = radius_m / (METERS_PER_DEGREE_LAT * max(0.000001, math.cos(math.radians(lat))))
    return BoundingBox(
        min_lat=lat - lat_delta,
        max_lat=lat + lat_delta,
        min_lng=lng - lng_delta,
        max_lng=lng + lng_delta,
    )


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))
