import json
from pathlib import Path

import numpy as np

from trucksim.infra.config import EngineConfig
from trucksim.tracking.engine import TrackingEngine
from trucksim.tracking.geometry import Coordinate
from trucksim.tracking.metrics import RollingStats, TickMetrics
from trucksim.tracking.scheduler import VirtualScheduler


def test_rolling_stats_percentiles():
    rs = RollingStats(maxlen=5)
    assert rs.p50() is None
    for v in range(10):
        rs.add(v)
    # only the last five values survive
    assert list(rs.values) == [5.0, 6.0, 7.0, 8.0, 9.0]
    assert rs.p50() == 7.0
    assert rs.p95() == 8.0


def test_engine_records_tick_metrics(tmp_path: Path):
    path = tmp_path / "out" / "metrics.json"
    metrics = TickMetrics(path)
    sched = VirtualScheduler()
    engine = TrackingEngine(sched, EngineConfig(route_points=2), rng=np.random.default_rng(0), metrics=metrics)
    engine.start_tracking("t", Coordinate(6.5, 3.4), 10.0)
    sched.advance(30.0)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["ticks"] == 4
    assert data["arrivals"] == 1
    assert data["tick_ms"]["n"] == 4
    assert data["tick_ms"]["p50"] >= 0.0
    assert data["notify_ms"]["n"] == 4


def test_metrics_without_path_stay_in_memory():
    metrics = TickMetrics()
    metrics.record_tick_ms(1.5)
    assert metrics.summary()["ticks"] == 1
