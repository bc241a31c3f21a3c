from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .geometry import Coordinate
from .route import Route

TRACKING = "TRACKING"
ARRIVED = "ARRIVED"


@dataclass
class TrackingRecord:
    """Mutable per-truck simulation state. Only the engine's tick writes it."""
    truck_id: str
    position: Coordinate
    speed_kmh: float
    heading_deg: float
    last_updated: datetime
    total_distance_km: float
    distance_remaining_km: float
    route: Route
    started_at: datetime
    estimated_arrival: datetime
    next_index: int = 1  # next unvisited route point
    arrived: bool = False
    origin_label: Optional[str] = None
    destination_label: Optional[str] = None

    @property
    def distance_covered_km(self) -> float:
        return self.total_distance_km - self.distance_remaining_km

    @property
    def status(self) -> str:
        return ARRIVED if self.arrived else TRACKING

    @property
    def destination(self) -> Coordinate:
        return self.route[-1]

    def snapshot(self) -> "TrackingRecord":
        # Route is an immutable tuple of frozen coordinates; a shallow copy is enough.
        return copy.copy(self)


@dataclass(frozen=True)
class PositionSample:
    truck_id: str
    position: Coordinate
    speed_kmh: float
    heading_deg: float
    timestamp: datetime
    fuel_level: float
    location: str
    status: str = TRACKING


__all__ = ["ARRIVED", "TRACKING", "PositionSample", "TrackingRecord"]
