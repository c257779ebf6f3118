import json

import pytest

from domain.errors import ConfigurationError
from services import dev_location
from services.dev_location import load_location_override, resolve_coordinates


def _write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_missing_file_means_no_override(tmp_path):
    assert load_location_override(str(tmp_path / "temp_location.json")) is None


def test_enabled_override_is_loaded(tmp_path):
    path = _write(tmp_path / "temp_location.json", {"enabled": True, "lat": 24.7136, "lng": 46.6753})
    override = load_location_override(path)
    assert (override.lat, override.lng) == (24.7136, 46.6753)


@pytest.mark.parametrize(
    "payload",
    [
        {"enabled": False, "lat": 24.7, "lng": 46.6},
        {"enabled": True, "lat": "24.7", "lng": 46.6},
        {"enabled": True},
        ["not", "an", "object"],
    ],
)
def test_disabled_or_invalid_override_is_ignored(tmp_path, payload):
    assert load_location_override(_write(tmp_path / "temp_location.json", payload)) is None


def test_unparseable_file_is_ignored(tmp_path):
    path = tmp_path / "temp_location.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_location_override(str(path)) is None


def test_query_coordinates_win_over_override(tmp_path):
    path = _write(tmp_path / "temp_location.json", {"enabled": True, "lat": 1.0, "lng": 2.0})
    location = resolve_coordinates({"lat": "24.71", "lng": "46.67"}, override_path=path)
    assert (location.lat, location.lng, location.overridden) == (24.71, 46.67, False)


@pytest.mark.parametrize("query", [{}, {"lat": "abc", "lng": "46.67"}, {"lat": "124.0", "lng": "46.67"}])
def test_override_used_when_query_unusable(tmp_path, query):
    path = _write(tmp_path / "temp_location.json", {"enabled": True, "lat": 24.7, "lng": 46.6})
    location = resolve_coordinates(query, override_path=path)
    assert (location.lat, location.lng, location.overridden) == (24.7, 46.6, True)


def test_no_coordinates_and_no_override_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        resolve_coordinates({}, override_path=str(tmp_path / "missing.json"))


def test_override_can_be_switched_off(tmp_path, monkeypatch):
    path = _write(tmp_path / "temp_location.json", {"enabled": True, "lat": 24.7, "lng": 46.6})
    monkeypatch.setattr(dev_location.settings, "DEV_LOCATION_OVERRIDE_ENABLED", False)
    with pytest.raises(ConfigurationError):
        resolve_coordinates({}, override_path=path)
