import asyncio
import json
from pathlib import Path

from trucksim.infra.config import EngineConfig
from trucksim.tracking.simulate import main, run_realtime, run_virtual


def test_run_virtual_reaches_arrival():
    summary = run_virtual(EngineConfig(seed=3), trucks=2, distance_km=40.0, duration_sec=100.0)
    assert set(summary) == {"truck-1", "truck-2"}
    for row in summary.values():
        assert row["status"] == "ARRIVED"
        assert row["remaining_km"] == 0.0
        assert row["progress_pct"] == 100.0
        assert row["eta"] == "Arrived"


def test_run_virtual_partial_progress():
    summary = run_virtual(EngineConfig(seed=3), trucks=1, distance_km=100.0, duration_sec=30.0)
    row = summary["truck-1"]
    assert row["status"] == "TRACKING"
    assert 0.0 < row["progress_pct"] < 100.0


def test_cli_main_writes_metrics_and_prints_summary(tmp_path: Path, capsys):
    metrics_path = tmp_path / "metrics.json"
    rc = main(["--trucks", "1", "--seed", "5", "--metrics", str(metrics_path), "--log-level", "WARNING"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["truck-1"]["status"] == "ARRIVED"
    assert json.loads(metrics_path.read_text(encoding="utf-8"))["arrivals"] == 1


def test_cli_main_reports_failure():
    assert main(["--trucks", "1", "--duration", "-5", "--log-level", "CRITICAL"]) == 2


def test_run_realtime_ticks_on_the_event_loop():
    cfg = EngineConfig(tick_interval_sec=0.01, route_points=3, seed=4)
    summary = asyncio.run(run_realtime(cfg, trucks=2, distance_km=5.0, duration_sec=0.5))
    assert set(summary) == {"truck-1", "truck-2"}
    for row in summary.values():
        assert row["status"] == "ARRIVED"
        assert row["remaining_km"] == 0.0


def test_cli_main_realtime(tmp_path: Path, capsys):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("tick_interval_sec: 0.01\nroute_points: 3\n", encoding="utf-8")
    rc = main([
        "--config", str(cfg_path), "--realtime", "--trucks", "1",
        "--distance", "5", "--duration", "0.5", "--log-level", "WARNING",
    ])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["truck-1"]["status"] == "ARRIVED"
