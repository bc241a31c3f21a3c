from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .geometry import Coordinate, project

Route = Tuple[Coordinate, ...]

DEFAULT_POINT_COUNT = 10
DEFAULT_JITTER_DEG = 0.01


def generate_route(
    origin: Coordinate,
    destination: Coordinate,
    point_count: int = DEFAULT_POINT_COUNT,
    rng: Optional[np.random.Generator] = None,
    jitter_deg: float = DEFAULT_JITTER_DEG,
) -> Route:
    """
    Build a `point_count + 1` long route from origin to destination.

    Interior point i (1 <= i < point_count) sits at fraction i / point_count
    of the straight lat/lng line, nudged by an independent offset in
    [-jitter_deg/2, jitter_deg/2) on each axis. Endpoints are never jittered.
    """
    if point_count < 1:
        raise ValueError("point_count must be >= 1")
    if rng is None:
        rng = np.random.default_rng()

    fractions = np.arange(1, point_count) / float(point_count)
    lats = origin.lat + (destination.lat - origin.lat) * fractions
    lngs = origin.lng + (destination.lng - origin.lng) * fractions
    if fractions.size:
        lats = lats + (rng.random(fractions.size) - 0.5) * jitter_deg
        lngs = lngs + (rng.random(fractions.size) - 0.5) * jitter_deg

    interior = [Coordinate(float(la), float(ln)) for la, ln in zip(lats, lngs)]
    return (origin, *interior, destination)


def random_destination(origin: Coordinate, dist_km: float, rng: np.random.Generator) -> Coordinate:
    """Pick a point `dist_km` away from origin on a random bearing."""
    if dist_km <= 0.0:
        return origin
    return project(origin, float(rng.uniform(0.0, 360.0)), dist_km)


__all__ = ["DEFAULT_JITTER_DEG", "DEFAULT_POINT_COUNT", "Route", "generate_route", "random_destination"]
