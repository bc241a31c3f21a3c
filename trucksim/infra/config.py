"""Engine configuration loaded from config.yaml with built-in defaults."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from trucksim.infra import paths

LOG = logging.getLogger("infra.config")

DEFAULTS: Dict[str, Any] = {
    "tick_interval_sec": 10.0,
    "route_points": 10,
    "route_jitter_deg": 0.01,
    "speed_kmh": {"min": 40.0, "max": 60.0},
    "assumed_avg_speed_kmh": 50.0,
    "default_origin": {"lat": 6.5244, "lng": 3.3792},
    "default_total_distance_km": 100.0,
    "fuel_burn_pct": 40.0,
    "seed": None,
}


@dataclass(frozen=True)
class EngineConfig:
    tick_interval_sec: float = 10.0
    route_points: int = 10
    route_jitter_deg: float = 0.01
    speed_min_kmh: float = 40.0
    speed_max_kmh: float = 60.0
    assumed_avg_speed_kmh: float = 50.0
    default_origin: Tuple[float, float] = (6.5244, 3.3792)
    default_total_distance_km: float = 100.0
    fuel_burn_pct: float = 40.0
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "EngineConfig":
        speed = dict(DEFAULTS["speed_kmh"])
        speed.update(cfg.get("speed_kmh") or {})
        origin = dict(DEFAULTS["default_origin"])
        origin.update(cfg.get("default_origin") or {})
        seed = cfg.get("seed", DEFAULTS["seed"])
        interval = float(cfg.get("tick_interval_sec", DEFAULTS["tick_interval_sec"]))
        if interval <= 0:
            LOG.warning("tick_interval_sec must be > 0, got %s; using %s", interval, DEFAULTS["tick_interval_sec"])
            interval = float(DEFAULTS["tick_interval_sec"])
        points = int(cfg.get("route_points", DEFAULTS["route_points"]))
        if points < 1:
            LOG.warning("route_points must be >= 1, got %s; using %s", points, DEFAULTS["route_points"])
            points = int(DEFAULTS["route_points"])
        return cls(
            tick_interval_sec=interval,
            route_points=points,
            route_jitter_deg=float(cfg.get("route_jitter_deg", DEFAULTS["route_jitter_deg"])),
            speed_min_kmh=float(speed["min"]),
            speed_max_kmh=float(speed["max"]),
            assumed_avg_speed_kmh=float(cfg.get("assumed_avg_speed_kmh", DEFAULTS["assumed_avg_speed_kmh"])),
            default_origin=(float(origin["lat"]), float(origin["lng"])),
            default_total_distance_km=float(
                cfg.get("default_total_distance_km", DEFAULTS["default_total_distance_km"])
            ),
            fuel_burn_pct=float(cfg.get("fuel_burn_pct", DEFAULTS["fuel_burn_pct"])),
            seed=None if seed is None else int(seed),
        )


def load_config_dict(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read config.yaml and shallow-merge it over DEFAULTS.

    A missing file yields the defaults. An unreadable or malformed file is
    logged and also yields the defaults.
    """
    cfg_path = Path(path) if path is not None else paths.CONFIG_PATH
    cfg = dict(DEFAULTS)
    if not cfg_path.exists():
        return cfg
    try:
        loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        LOG.warning("Ignoring unreadable config %s: %s", cfg_path, e)
        return cfg
    if not isinstance(loaded, dict):
        LOG.warning("Ignoring config %s: top level is not a mapping", cfg_path)
        return cfg
    cfg.update(loaded)
    return cfg


def load_config(path: Optional[Path] = None) -> EngineConfig:
    return EngineConfig.from_dict(load_config_dict(path))


__all__ = ["DEFAULTS", "EngineConfig", "load_config", "load_config_dict"]
