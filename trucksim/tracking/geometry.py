"""Spherical geometry helpers for simulated truck positions.

Formulas
--------
- Distance (km): haversine formula on a sphere (R = 6371 km).
- Bearing (degrees): initial navigation bearing from point 1 to point 2,
  normalized to [0, 360), where 0° = North and 90° = East.
- Projection: destination point along a great circle given a start point,
  bearing and distance.

All functions are pure. Non-finite inputs propagate as NaN.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import asin, atan2, cos, degrees, radians, sin, sqrt
from typing import Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates using haversine.

    Returns:
        Distance in kilometres along the surface of a sphere of radius 6371 km.
    """
    dlat = radians(b.lat - a.lat)
    dlng = radians(b.lng - a.lng)
    lat1r = radians(a.lat)
    lat2r = radians(b.lat)

    h = sin(dlat / 2.0) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlng / 2.0) ** 2
    # Clamp: rounding near antipodes and out-of-range latitudes can leave [0, 1].
    return 2.0 * EARTH_RADIUS_KM * asin(sqrt(min(1.0, max(0.0, h))))


def bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Initial navigation bearing from a to b in degrees, in [0, 360)."""
    lat1r = radians(a.lat)
    lat2r = radians(b.lat)
    dlng = radians(b.lng - a.lng)

    y = sin(dlng) * cos(lat2r)
    x = cos(lat1r) * sin(lat2r) - sin(lat1r) * cos(lat2r) * cos(dlng)
    brng = (degrees(atan2(y, x)) + 360.0) % 360.0
    # (-tiny + 360) % 360 can round to exactly 360.0
    return 0.0 if brng >= 360.0 else brng


def project(origin: Coordinate, heading_deg: float, dist_km: float) -> Coordinate:
    """Move `dist_km` from `origin` along `heading_deg` on a great circle."""
    lat1 = radians(origin.lat)
    lng1 = radians(origin.lng)
    brg = radians(heading_deg)
    ang = dist_km / EARTH_RADIUS_KM

    lat2 = asin(max(-1.0, min(1.0, sin(lat1) * cos(ang) + cos(lat1) * sin(ang) * cos(brg))))
    lng2 = lng1 + atan2(sin(brg) * sin(ang) * cos(lat1), cos(ang) - sin(lat1) * sin(lat2))
    return Coordinate(degrees(lat2), degrees(lng2))


def path_length_km(points: Sequence[Coordinate]) -> float:
    """Sum of haversine legs along an ordered polyline (vectorized)."""
    if len(points) < 2:
        return 0.0
    arr = np.radians(np.array([p.as_tuple() for p in points], dtype=float))
    lat1, lat2 = arr[:-1, 0], arr[1:, 0]
    dlat = lat2 - lat1
    dlng = arr[1:, 1] - arr[:-1, 1]
    h = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlng / 2.0) ** 2
    legs = 2.0 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))
    return float(legs.sum())


# --- unit conversions ---

def km_to_m(km: float) -> float:
    return km * 1000.0


def kmh_to_mps(kmh: float) -> float:
    return kmh / 3.6


def mps_to_kmh(mps: float) -> float:
    return mps * 3.6


__all__ = [
    "EARTH_RADIUS_KM",
    "Coordinate",
    "bearing_deg",
    "distance_km",
    "km_to_m",
    "kmh_to_mps",
    "mps_to_kmh",
    "path_length_km",
    "project",
]
