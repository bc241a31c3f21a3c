import numpy as np
import pytest

from trucksim.tracking.geometry import Coordinate, distance_km
from trucksim.tracking.route import generate_route, random_destination

ORIGIN = Coordinate(6.5, 3.4)
DEST = Coordinate(7.5, 4.4)


def test_route_endpoints_and_length():
    rng = np.random.default_rng(1)
    for n in (1, 2, 5, 10, 25):
        route = generate_route(ORIGIN, DEST, n, rng)
        assert len(route) == n + 1
        assert route[0] == ORIGIN
        assert route[-1] == DEST


def test_single_point_route_is_just_endpoints():
    route = generate_route(ORIGIN, DEST, 1, np.random.default_rng(0))
    assert route == (ORIGIN, DEST)


def test_interior_points_follow_interpolation_within_jitter():
    n = 10
    jitter = 0.01
    route = generate_route(ORIGIN, DEST, n, np.random.default_rng(7), jitter_deg=jitter)
    for i, p in enumerate(route[1:-1], start=1):
        frac = i / n
        assert abs(p.lat - (ORIGIN.lat + (DEST.lat - ORIGIN.lat) * frac)) <= jitter / 2
        assert abs(p.lng - (ORIGIN.lng + (DEST.lng - ORIGIN.lng) * frac)) <= jitter / 2
    # fraction step (0.1 deg) dominates the jitter, so latitude keeps increasing
    lats = [p.lat for p in route]
    assert lats == sorted(lats)


def test_route_reproducible_with_seed():
    a = generate_route(ORIGIN, DEST, 10, np.random.default_rng(42))
    b = generate_route(ORIGIN, DEST, 10, np.random.default_rng(42))
    assert a == b


def test_invalid_point_count():
    with pytest.raises(ValueError):
        generate_route(ORIGIN, DEST, 0)


def test_random_destination_distance():
    rng = np.random.default_rng(3)
    dest = random_destination(ORIGIN, 100.0, rng)
    assert distance_km(ORIGIN, dest) == pytest.approx(100.0, rel=1e-6)
    assert random_destination(ORIGIN, 0.0, rng) == ORIGIN
    assert random_destination(ORIGIN, -5.0, rng) == ORIGIN
