import random

import pytest

from longtrip.models.itinerary_models import Coordinates
from longtrip.services.location_utility import LocationUtility

PARIS = (48.8566, 2.3522)
LONDON = (51.5074, -0.1278)


@pytest.fixture
def locations():
    return LocationUtility()


def test_find_coordinates_exact(locations):
    match = locations.find_coordinates("Tokyo, Japan")
    assert match is not None
    assert match.city == "tokyo"
    assert match.region == "japan"
    assert match.timezone == "Asia/Tokyo"
    assert match.partial_match is False

def test_find_coordinates_is_case_insensitive(locations):
    match = locations.find_coordinates("  PARIS ")
    assert match is not None
    assert match.city == "paris"

def test_find_coordinates_partial_word_match(locations):
    match = locations.find_coordinates("Chiang Rai")
    assert match is not None
    assert match.city == "chiang mai"
    assert match.partial_match is True

def test_find_coordinates_matches_whole_words(locations):
    assert locations.find_coordinates("Hue, Vietnam").city == "hue"
    assert locations.find_coordinates("Minh").city == "ho chi minh city"
    # "hue" must not match inside another word
    assert locations.find_coordinates("Puerto Huesca") is None

@pytest.mark.parametrize("name", ["Mexico City", "San Diego", "New Delhi", "Santiago, Chile", "Los Cabos"])
def test_generic_words_do_not_match(locations, name):
    """Test that shared words like 'city' or 'san' do not pick an unrelated city"""
    assert locations.find_coordinates(name) is None

@pytest.mark.parametrize("name", [None, "", "   ", "Zzzqqq"])
def test_find_coordinates_unknown(locations, name):
    assert locations.find_coordinates(name) is None

def test_distance_paris_london(locations):
    km = locations.distance(PARIS, LONDON)
    assert km == pytest.approx(343.5, abs=2)
    assert locations.distance(PARIS, LONDON, "miles") == pytest.approx(km * 0.621371)

def test_distance_accepts_coordinate_shapes(locations):
    a = Coordinates(lat=PARIS[0], lng=PARIS[1])
    b = {"lat": LONDON[0], "lng": LONDON[1]}
    assert locations.distance(a, b) == pytest.approx(locations.distance(PARIS, LONDON))

def test_distance_invalid_input_is_zero(locations):
    assert locations.distance(None, LONDON) == 0.0
    assert locations.distance({"lat": "x", "lng": 1}, LONDON) == 0.0

def test_estimate_travel_time(locations):
    assert locations.estimate_travel_time(PARIS, PARIS) == 0
    # ~100 m on foot still takes the minimum
    assert locations.estimate_travel_time((48.8566, 2.3522), (48.8575, 2.3522), "walking") == 5
    minutes = locations.estimate_travel_time(PARIS, LONDON, "driving")
    assert minutes == pytest.approx(343.5 / 30 * 60, rel=0.02)

def test_validate_coordinates(locations):
    assert locations.validate_coordinates((10, 10)).valid is True
    assert locations.validate_coordinates({"lat": 91, "lng": 0}).valid is False
    assert "Longitude" in locations.validate_coordinates({"lat": 0, "lng": 181}).error
    assert "numbers" in locations.validate_coordinates({"lat": "a", "lng": 0}).error
    assert locations.validate_coordinates(None).valid is False

def test_find_closest_city(locations):
    closest = locations.find_closest_city((48.85, 2.35))
    assert closest.name == "paris"
    assert closest.distance < 5
    assert locations.find_closest_city({"lat": 200, "lng": 0}) is None

def test_get_timezone(locations):
    assert locations.get_timezone((35.7, 139.7)) == "Asia/Tokyo"
    assert locations.get_timezone(None) == "UTC"

def test_generate_nearby_coordinates_stays_in_radius(locations):
    rng = random.Random(3)
    for _ in range(20):
        point = locations.generate_nearby_coordinates(PARIS, radius_km=5, rng=rng)
        assert locations.distance(PARIS, point) <= 5.1

def test_format_address(locations):
    assert locations.format_address(None) == "Location not specified"
    assert locations.format_address({"name": "Louvre", "city": "Paris"}) == "Louvre, Paris"
    assert locations.format_address({}) == "Location not specified"

def test_regions(locations):
    assert locations.is_in_region((21.03, 105.85), "Vietnam") is True
    assert locations.is_in_region(PARIS, "japan") is False
    assert {c["name"] for c in locations.get_cities_in_region("japan")} >= {"tokyo", "kyoto"}
