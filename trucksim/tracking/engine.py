"""Simulated truck tracking engine.

`TrackingEngine` owns every tracking record, the periodic task that advances
each one, and the subscriber registry. Construct one per process (or per
test) and `close()` it on shutdown; nothing here is module-global.

Per tick a truck hops to the next point of its generated route. Once the
route is exhausted the truck is ARRIVED: remaining distance and speed are
pinned to zero and samples keep flowing until `stop_tracking`.
"""
from __future__ import annotations

import itertools
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

import numpy as np

from trucksim.infra.config import EngineConfig

from .geometry import Coordinate, bearing_deg, distance_km, path_length_km
from .metrics import TickMetrics
from .record import ARRIVED, PositionSample, TrackingRecord
from .route import generate_route, random_destination

LOG = logging.getLogger("tracking.engine")

UpdateCallback = Callable[[PositionSample], None]
CoordinateLike = Union[Coordinate, Sequence[float], Mapping[str, float]]


class TaskHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def every(self, interval: float, fn: Callable[[], None]) -> TaskHandle: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_coordinate(value: CoordinateLike) -> Coordinate:
    """Accept a Coordinate, a (lat, lng) pair or a {"lat", "lng"} mapping."""
    if isinstance(value, Coordinate):
        return value
    if isinstance(value, Mapping):
        lng = value["lng"] if "lng" in value else value["lon"]
        return Coordinate(float(value["lat"]), float(lng))
    lat, lng = value
    return Coordinate(float(lat), float(lng))


class Subscription:
    """Handle returned by `register_update_callback`."""

    def __init__(self, engine: "TrackingEngine", token: int, fn: UpdateCallback, truck_id: Optional[str]) -> None:
        self._engine = engine
        self.token = token
        self.fn = fn
        self.truck_id = truck_id

    @property
    def active(self) -> bool:
        return self._engine._subscribers.get(self.token) is self

    def unregister(self) -> bool:
        return self._engine.unregister_update_callback(self)

    def wants(self, truck_id: str) -> bool:
        return self.truck_id is None or self.truck_id == truck_id


class TrackingEngine:
    def __init__(
        self,
        scheduler: Scheduler,
        config: Optional[EngineConfig] = None,
        rng: Optional[np.random.Generator] = None,
        metrics: Optional[TickMetrics] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.scheduler = scheduler
        self.metrics = metrics
        self._rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self._clock = clock or _utcnow
        self._records: Dict[str, TrackingRecord] = {}
        self._tasks: Dict[str, TaskHandle] = {}
        self._subscribers: Dict[int, Subscription] = {}
        self._tokens = itertools.count(1)
        self._closed = False

    # ------------------------------------------------------------------ lifecycle

    def start_tracking(
        self,
        truck_id: str,
        origin: CoordinateLike,
        total_distance_km: float,
        destination: Optional[CoordinateLike] = None,
        origin_label: Optional[str] = None,
        destination_label: Optional[str] = None,
    ) -> None:
        """Begin (or restart) simulated tracking for `truck_id`.

        Restarting an already-tracked id cancels its old task and discards its
        route. One tick runs before this returns so subscribers see a first
        sample immediately. If the scheduler refuses the new task, the error
        propagates and any existing tracking for `truck_id` is left untouched.
        """
        if self._closed:
            raise RuntimeError("tracking engine is closed")
        cfg = self.config
        start = as_coordinate(origin)
        total = float(total_distance_km)

        if destination is not None:
            end = as_coordinate(destination)
        else:
            end = random_destination(start, total, self._rng)
        route = generate_route(start, end, cfg.route_points, self._rng, cfg.route_jitter_deg)

        now = self._clock()
        hours = total / cfg.assumed_avg_speed_kmh if total > 0 and cfg.assumed_avg_speed_kmh > 0 else 0.0
        record = TrackingRecord(
            truck_id=truck_id,
            position=start,
            speed_kmh=self._random_speed(),
            heading_deg=float(self._rng.uniform(0.0, 360.0)),
            last_updated=now,
            total_distance_km=total,
            distance_remaining_km=total,
            route=route,
            started_at=now,
            estimated_arrival=now + timedelta(hours=hours),
            origin_label=origin_label,
            destination_label=destination_label,
        )
        # Schedule first: nothing is registered until the task exists.
        task = self.scheduler.every(cfg.tick_interval_sec, lambda: self._tick(truck_id, record))

        if truck_id in self._records:
            LOG.info("Restarting tracking for %s", truck_id)
            self.stop_tracking(truck_id)
        self._records[truck_id] = record
        self._tasks[truck_id] = task
        LOG.info(
            "Tracking %s: %.1f km planned, %d route points (%.1f km), eta %s",
            truck_id, total, len(route), path_length_km(route), record.estimated_arrival.isoformat(),
        )
        self._tick(truck_id, record)

    def stop_tracking(self, truck_id: str) -> None:
        # Cancel before removing so a late tick can never see a dropped route.
        task = self._tasks.pop(truck_id, None)
        if task is not None:
            task.cancel()
        if self._records.pop(truck_id, None) is not None:
            LOG.info("Stopped tracking %s", truck_id)

    def close(self) -> None:
        """Stop every truck and drop all subscribers. Idempotent."""
        if self._closed:
            return
        for truck_id in list(self._records):
            self.stop_tracking(truck_id)
        self._subscribers.clear()
        self._closed = True
        LOG.info("Tracking engine closed")

    def __enter__(self) -> "TrackingEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------ queries

    def is_tracking(self, truck_id: str) -> bool:
        return truck_id in self._records

    def get_tracking_info(self, truck_id: str) -> Optional[TrackingRecord]:
        """Snapshot of the latest record; re-fetch rather than caching it."""
        record = self._records.get(truck_id)
        return record.snapshot() if record is not None else None

    def get_path_history(self, truck_id: str) -> List[Coordinate]:
        record = self._records.get(truck_id)
        return list(record.route) if record is not None else []

    def tracked_trucks(self) -> List[str]:
        return list(self._records)

    def all_tracking_info(self) -> Dict[str, TrackingRecord]:
        return {tid: rec.snapshot() for tid, rec in self._records.items()}

    # ------------------------------------------------------------------ subscribers

    def register_update_callback(self, fn: UpdateCallback, truck_id: Optional[str] = None) -> Subscription:
        """Subscribe to position samples.

        With `truck_id=None` the callback receives every truck's samples.
        Callbacks run synchronously inside the tick, in registration order.
        """
        sub = Subscription(self, next(self._tokens), fn, truck_id)
        self._subscribers[sub.token] = sub
        return sub

    def unregister_update_callback(self, sub: Subscription) -> bool:
        if self._subscribers.get(sub.token) is not sub:
            return False
        del self._subscribers[sub.token]
        return True

    # ------------------------------------------------------------------ simulation

    def _random_speed(self) -> float:
        return float(self._rng.uniform(self.config.speed_min_kmh, self.config.speed_max_kmh))

    def _tick(self, truck_id: str, expected: TrackingRecord) -> None:
        record = self._records.get(truck_id)
        if record is None or record is not expected:
            # Task outlived its record (stopped or restarted); nothing to do.
            return
        t0 = time.perf_counter()

        if record.next_index < len(record.route):
            prev = record.position
            nxt = record.route[record.next_index]
            record.next_index += 1
            step_km = distance_km(prev, nxt)
            if step_km > 0.0:
                record.heading_deg = bearing_deg(prev, nxt)
            record.position = nxt
            record.distance_remaining_km = max(0.0, record.distance_remaining_km - step_km)
            record.speed_kmh = self._random_speed()
        else:
            if not record.arrived:
                LOG.info("%s arrived after %.2f km", truck_id, record.total_distance_km)
                if self.metrics is not None:
                    self.metrics.record_arrival()
            record.arrived = True
            record.distance_remaining_km = 0.0
            record.speed_kmh = 0.0
        record.last_updated = self._clock()

        LOG.debug(
            "tick %s: pos=(%.5f, %.5f) speed=%.1f heading=%.1f remaining=%.3f",
            truck_id, record.position.lat, record.position.lng,
            record.speed_kmh, record.heading_deg, record.distance_remaining_km,
        )
        sample = self._make_sample(record)
        t1 = time.perf_counter()
        self._notify(sample)
        if self.metrics is not None:
            self.metrics.record_notify_ms((time.perf_counter() - t1) * 1000.0)
            self.metrics.record_tick_ms((time.perf_counter() - t0) * 1000.0)

    def _make_sample(self, record: TrackingRecord) -> PositionSample:
        if record.total_distance_km > 0:
            frac = min(1.0, max(0.0, record.distance_covered_km / record.total_distance_km))
        else:
            frac = 1.0 if record.arrived else 0.0
        fuel = round(max(0.0, 100.0 - self.config.fuel_burn_pct * frac), 1)
        return PositionSample(
            truck_id=record.truck_id,
            position=record.position,
            speed_kmh=record.speed_kmh,
            heading_deg=record.heading_deg,
            timestamp=record.last_updated,
            fuel_level=fuel,
            location=_describe_location(record),
            status=record.status,
        )

    def _notify(self, sample: PositionSample) -> None:
        # Snapshot: callbacks may (un)register or stop tracking while we iterate.
        for sub in list(self._subscribers.values()):
            if not sub.wants(sample.truck_id) or not sub.active:
                continue
            try:
                sub.fn(sample)
            except Exception:
                LOG.exception("Update callback %d failed for %s", sub.token, sample.truck_id)


def _describe_location(record: TrackingRecord) -> str:
    if record.status == ARRIVED:
        return f"Arrived at {record.destination_label or 'destination'}"
    if record.destination_label:
        return f"En route to {record.destination_label}"
    return f"{record.position.lat:.4f}, {record.position.lng:.4f}"


__all__ = ["Scheduler", "Subscription", "TaskHandle", "TrackingEngine", "as_coordinate"]
