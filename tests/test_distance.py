import pytest

from locationdata.services.distance import EARTH_RADIUS_KM, accumulate, haversine_km

from tests.conftest import make_record


def test_same_point_is_zero():
    assert haversine_km(37.7749, -122.4194, 37.7749, -122.4194) == 0


def test_one_degree_of_longitude_at_equator():
    expected = 2 * 3.141592653589793 * EARTH_RADIUS_KM / 360
    assert haversine_km(0, 0, 0, 1) == pytest.approx(expected, rel=0.01)
    assert haversine_km(0, 0, 0, 1) == pytest.approx(111.2, rel=0.01)


def test_distance_is_symmetric():
    paris_to_london = haversine_km(48.8566, 2.3522, 51.5074, -0.1278)
    london_to_paris = haversine_km(51.5074, -0.1278, 48.8566, 2.3522)
    assert paris_to_london == pytest.approx(london_to_paris)
    assert paris_to_london == pytest.approx(343.5, rel=0.01)


class TestAccumulate:
    def test_no_previous_record(self):
        assert accumulate(None, make_record(0, 0)) == 0.0

    def test_previous_without_coordinates(self):
        previous = make_record(None, None, country="France")
        assert accumulate(previous, make_record(0, 1)) == 0.0

    def test_current_without_coordinates(self):
        assert accumulate(make_record(0, 0), make_record(None, None)) == 0.0

    def test_between_two_records(self):
        assert accumulate(make_record(0, 0), make_record(0, 1)) == pytest.approx(111.19, rel=0.01)
