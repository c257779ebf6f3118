import math

import pytest

from domain.models import LocationCell
from services.location_cell import bounding_box, haversine_m, quantize


def test_quantize_rounds_to_three_decimals():
    assert quantize(24.7136, 46.6753) == LocationCell(24.714, 46.675)


def test_quantize_rounds_half_up():
    assert quantize(24.0005, 46.0015).lat_cell == 24.001
    assert quantize(24.0005, 46.0015).lng_cell == 46.002


@pytest.mark.parametrize(
    "lat,lng",
    [(24.7136, 46.6753), (-33.86785, 151.20732), (0.0, 0.0), (51.50009, -0.12475), (89.9999, 179.9996)],
)
def test_quantize_is_idempotent(lat, lng):
    cell = quantize(lat, lng)
    assert quantize(cell.lat_cell, cell.lng_cell) == cell


def test_nearby_points_share_a_cell_key():
    a = quantize(24.71361, 46.67531)
    b = quantize(24.71351, 46.67549)
    assert a == b
    assert a.key == b.key == "24.714:46.675"


def test_bounding_box_latitude_delta():
    box = bounding_box(24.71, 46.67, 111.0)
    assert box.max_lat - 24.71 == pytest.approx(0.001)
    assert 24.71 - box.min_lat == pytest.approx(0.001)
    assert box.contains(24.71, 46.67)


def test_bounding_box_longitude_widens_with_latitude():
    equator = bounding_box(0.0, 10.0, 1000)
    sixty = bounding_box(60.0, 10.0, 1000)
    eq_span = equator.max_lng - equator.min_lng
    assert (sixty.max_lng - sixty.min_lng) == pytest.approx(eq_span / math.cos(math.radians(60)))


def test_haversine_one_degree_latitude():
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111195, abs=1)
    assert haversine_m(24.71, 46.67, 24.71, 46.67) == 0.0


def test_negative_halves_round_away_from_zero():
    assert quantize(-2.0005, -46.0015) == LocationCell(-2.001, -46.002)
