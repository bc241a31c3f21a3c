from pathlib import Path

# Repo root (two levels above trucksim/infra)
ROOT = Path(__file__).resolve().parents[2]

CONFIG_PATH = ROOT / "config.yaml"

# Common output locations
OUT = ROOT / "out"
METRICS = OUT / "metrics.json"
