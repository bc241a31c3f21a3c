from __future__ import annotations
import json, time
from pathlib import Path
from collections import deque
from typing import Deque, Optional


class RollingStats:
    """Rolling window for simple p50/p95."""
    def __init__(self, maxlen: int = 500):
        self.values: Deque[float] = deque(maxlen=maxlen)

    def add(self, v: float) -> None:
        self.values.append(float(v))

    def _pick(self, q: float) -> Optional[float]:
        if not self.values:
            return None
        arr = sorted(self.values)
        idx = int(q * (len(arr) - 1))
        return arr[idx]

    def p50(self) -> Optional[float]:
        return self._pick(0.50)

    def p95(self) -> Optional[float]:
        return self._pick(0.95)


class TickMetrics:
    """Collect tick and subscriber-notify latencies; optionally persist p50/p95 as JSON.

    With `path=None` nothing touches the filesystem.
    """
    def __init__(self, path: Optional[Path] = None, window: int = 500):
        self.path = path
        self.ticks = 0
        self.arrivals = 0
        self._tick = RollingStats(window)
        self._notify = RollingStats(window)

    # --- recorders ---
    def record_tick_ms(self, ms: float) -> None:
        self.ticks += 1
        self._tick.add(ms); self._flush()

    def record_notify_ms(self, ms: float) -> None:
        self._notify.add(ms); self._flush()

    def record_arrival(self) -> None:
        self.arrivals += 1; self._flush()

    def summary(self) -> dict:
        return {
            "updated_ns": time.time_ns(),
            "ticks": self.ticks,
            "arrivals": self.arrivals,
            "tick_ms":   {"p50": self._tick.p50(),   "p95": self._tick.p95(),   "n": len(self._tick.values)},
            "notify_ms": {"p50": self._notify.p50(), "p95": self._notify.p95(), "n": len(self._notify.values)},
        }

    # --- persist ---
    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.summary(), indent=2), encoding="utf-8")

