"""Read-only helpers used by progress bars, ETA badges and delivery bookkeeping."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from .engine import TrackingEngine
from .record import TrackingRecord

LOG = logging.getLogger("tracking.consumers")


def delivery_progress(record: Optional[TrackingRecord]) -> float:
    """Percent of the planned distance covered, clamped to [0, 100] so an arrived truck reads 100."""
    if record is None or record.total_distance_km <= 0:
        return 0.0
    pct = record.distance_covered_km / record.total_distance_km * 100.0
    return max(0.0, min(100.0, pct))


def eta_minutes(record: Optional[TrackingRecord]) -> Optional[float]:
    """Minutes to go at the current speed; None when the truck is not moving."""
    if record is None:
        return None
    if record.distance_remaining_km <= 0:
        return 0.0
    if record.speed_kmh <= 0:
        return None
    return record.distance_remaining_km / record.speed_kmh * 60.0


def eta_text(record: Optional[TrackingRecord]) -> str:
    if record is None:
        return "Not tracked"
    if record.arrived or record.distance_remaining_km <= 0:
        return "Arrived"
    mins = eta_minutes(record)
    if mins is None:
        return "Stopped"
    if mins < 1.0:
        return "< 1 min"
    return f"~{int(round(mins))} min"


@dataclass
class DeliveryRecord:
    order_id: str
    truck_id: str
    distance_km: float
    delivered_at: datetime


@dataclass
class DeliveryRecorder:
    """Records a completed delivery's distance exactly once per order.

    Reads the engine on demand instead of subscribing to every tick.
    """
    engine: TrackingEngine
    deliveries: Dict[str, DeliveryRecord] = field(default_factory=dict)

    def mark_delivered(self, order_id: str, truck_id: str) -> Optional[DeliveryRecord]:
        if order_id in self.deliveries:
            LOG.warning("Order %s already delivered; keeping first record", order_id)
            return self.deliveries[order_id]
        info = self.engine.get_tracking_info(truck_id)
        self.engine.stop_tracking(truck_id)
        if info is None:
            LOG.warning("Order %s: truck %s is not being tracked", order_id, truck_id)
            return None
        rec = DeliveryRecord(order_id, truck_id, info.distance_covered_km, info.last_updated)
        self.deliveries[order_id] = rec
        LOG.info("Order %s delivered by %s: %.2f km", order_id, truck_id, rec.distance_km)
        return rec


__all__ = ["DeliveryRecord", "DeliveryRecorder", "delivery_progress", "eta_minutes", "eta_text"]
