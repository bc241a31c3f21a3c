from math import cos, radians

import pytest

from trucksim.tracking.geometry import (
    Coordinate,
    bearing_deg,
    distance_km,
    km_to_m,
    kmh_to_mps,
    mps_to_kmh,
    path_length_km,
    project,
)

LAGOS = Coordinate(6.5244, 3.3792)
ABUJA = Coordinate(9.0765, 7.3986)


def test_distance_symmetric_and_zero_on_identity():
    assert distance_km(LAGOS, ABUJA) == pytest.approx(distance_km(ABUJA, LAGOS))
    assert distance_km(LAGOS, LAGOS) == 0.0


def test_distance_reference_values():
    # One degree of latitude on a 6371 km sphere
    assert distance_km(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0)) == pytest.approx(111.195, abs=1e-3)
    # Lagos -> Abuja is roughly 525 km as the crow flies
    assert 515.0 <= distance_km(LAGOS, ABUJA) <= 535.0
    # Antipodes: half the circumference
    assert distance_km(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0)) == pytest.approx(20015.09, abs=0.1)


def test_bearing_cardinal_directions():
    o = Coordinate(0.0, 0.0)
    assert bearing_deg(o, Coordinate(1.0, 0.0)) == pytest.approx(0.0)
    assert bearing_deg(o, Coordinate(0.0, 1.0)) == pytest.approx(90.0)
    assert bearing_deg(o, Coordinate(-1.0, 0.0)) == pytest.approx(180.0)
    assert bearing_deg(o, Coordinate(0.0, -1.0)) == pytest.approx(270.0)


def test_bearing_range_and_asymmetry():
    pairs = [
        (LAGOS, ABUJA),
        (Coordinate(52.52, 13.405), Coordinate(48.8566, 2.3522)),
        (Coordinate(-33.87, 151.21), Coordinate(-37.81, 144.96)),
        (Coordinate(10.0, -170.0), Coordinate(12.0, 175.0)),
    ]
    for a, b in pairs:
        fwd = bearing_deg(a, b)
        back = bearing_deg(b, a)
        assert 0.0 <= fwd < 360.0
        assert 0.0 <= back < 360.0
        assert fwd != pytest.approx(back)


def test_project_lands_at_requested_distance_and_bearing():
    lat0 = 52.0
    # ~10 km east
    dest = project(Coordinate(lat0, 13.0), 90.0, 10.0)
    assert distance_km(Coordinate(lat0, 13.0), dest) == pytest.approx(10.0, rel=1e-6)
    assert 85.0 <= bearing_deg(Coordinate(lat0, 13.0), dest) <= 95.0
    assert dest.lng - 13.0 == pytest.approx(10.0 / (111.195 * cos(radians(lat0))), rel=1e-2)


def test_path_length_matches_sum_of_legs():
    pts = [LAGOS, Coordinate(7.0, 4.0), Coordinate(8.0, 5.5), ABUJA]
    legs = sum(distance_km(a, b) for a, b in zip(pts, pts[1:]))
    assert path_length_km(pts) == pytest.approx(legs)
    assert path_length_km([LAGOS]) == 0.0


def test_unit_conversion():
    assert kmh_to_mps(36.0) == pytest.approx(10.0)
    assert mps_to_kmh(10.0) == pytest.approx(36.0)
    assert km_to_m(1.5) == 1500.0
