from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

from trucksim.infra import paths
from trucksim.infra.config import EngineConfig, load_config

from .consumers import delivery_progress, eta_text
from .engine import TrackingEngine
from .geometry import Coordinate
from .metrics import TickMetrics
from .record import PositionSample
from .scheduler import AsyncioScheduler, VirtualScheduler

# -----------------------------------------------------------------------------
# simulate: drive a small fleet through the tracking engine from the shell.
#  - default: fast-forward on a virtual clock (instant, reproducible with --seed)
#  - --realtime: tick on the asyncio loop at the configured interval
# -----------------------------------------------------------------------------

LOG = logging.getLogger("tracking.simulate")


def _log_sample(sample: PositionSample) -> None:
    LOG.info(
        "%s %s (%.5f, %.5f) %.1f km/h hdg %.0f fuel %.1f%% - %s",
        sample.timestamp.isoformat(), sample.truck_id,
        sample.position.lat, sample.position.lng,
        sample.speed_kmh, sample.heading_deg, sample.fuel_level, sample.location,
    )


def _start_fleet(engine: TrackingEngine, trucks: int, distance_km: float) -> List[str]:
    origin = Coordinate(*engine.config.default_origin)
    ids = [f"truck-{i + 1}" for i in range(trucks)]
    for tid in ids:
        engine.start_tracking(tid, origin, distance_km)
    return ids


def _summary(engine: TrackingEngine) -> Dict[str, dict]:
    out: Dict[str, dict] = {}
    for tid, rec in engine.all_tracking_info().items():
        out[tid] = {
            "status": rec.status,
            "covered_km": round(rec.distance_covered_km, 3),
            "remaining_km": round(rec.distance_remaining_km, 3),
            "progress_pct": round(delivery_progress(rec), 1),
            "eta": eta_text(rec),
        }
    return out


def run_virtual(
    cfg: EngineConfig,
    trucks: int,
    distance_km: float,
    duration_sec: float,
    metrics: Optional[TickMetrics] = None,
) -> Dict[str, dict]:
    """Run the fleet on a virtual clock and return a per-truck summary."""
    sched = VirtualScheduler()
    base = datetime.now(timezone.utc)
    with TrackingEngine(sched, cfg, metrics=metrics, clock=lambda: base + timedelta(seconds=sched.now)) as engine:
        engine.register_update_callback(_log_sample)
        _start_fleet(engine, trucks, distance_km)
        sched.advance(duration_sec)
        return _summary(engine)


async def run_realtime(
    cfg: EngineConfig,
    trucks: int,
    distance_km: float,
    duration_sec: float,
    metrics: Optional[TickMetrics] = None,
) -> Dict[str, dict]:
    with TrackingEngine(AsyncioScheduler(), cfg, metrics=metrics) as engine:
        engine.register_update_callback(_log_sample)
        _start_fleet(engine, trucks, distance_km)
        await asyncio.sleep(duration_sec)
        return _summary(engine)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Simulated truck tracking runner")
    p.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    p.add_argument("--trucks", type=int, default=3, help="Number of trucks to track")
    p.add_argument("--distance", type=float, default=None, help="Planned distance per truck (km)")
    p.add_argument("--duration", type=float, default=None,
                   help="Seconds to simulate (default: enough ticks to arrive)")
    p.add_argument("--seed", type=int, default=None, help="Random seed for routes and speeds")
    p.add_argument("--realtime", action="store_true", help="Tick on the asyncio loop in wall-clock time")
    p.add_argument("--metrics", type=str, nargs="?", default=None, const=str(paths.METRICS),
                   help="Write tick latency p50/p95 JSON (default path: out/metrics.json)")
    p.add_argument("--log-level", type=str, default="INFO", help="Logging level (e.g., INFO, DEBUG)")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    try:
        cfg = load_config(Path(args.config) if args.config else None)
        if args.seed is not None:
            cfg = replace(cfg, seed=int(args.seed))
        distance = float(args.distance) if args.distance is not None else cfg.default_total_distance_km
        # route_points hops plus one arrival tick; the first hop is immediate
        duration = float(args.duration) if args.duration is not None else cfg.tick_interval_sec * cfg.route_points
        metrics = TickMetrics(Path(args.metrics)) if args.metrics else None

        if args.realtime:
            summary = asyncio.run(run_realtime(cfg, int(args.trucks), distance, duration, metrics))
        else:
            summary = run_virtual(cfg, int(args.trucks), distance, duration, metrics)
        print(json.dumps(summary, indent=2))
        return 0
    except Exception as e:
        LOG.error("simulate failed: %s", e)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
