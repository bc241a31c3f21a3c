from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List

import pandas as pd
import streamlit as st

from trucksim.infra.config import load_config
from trucksim.tracking.consumers import DeliveryRecorder, delivery_progress, eta_text
from trucksim.tracking.engine import TrackingEngine
from trucksim.tracking.geometry import Coordinate
from trucksim.tracking.scheduler import VirtualScheduler
from trucksim.ui.map_view import LiveMapLayer, render_map_html

LOG = logging.getLogger("ui.app")


def _session() -> Dict[str, object]:
    """Build the engine once per browser session.

    Streamlit reruns this script on every interaction, so the engine runs on a
    virtual clock that each rerun advances by the wall time since the last one.
    """
    if "engine" not in st.session_state:
        cfg = load_config()
        sched = VirtualScheduler()
        base = datetime.now(timezone.utc)
        engine = TrackingEngine(sched, cfg, clock=lambda: base + timedelta(seconds=sched.now))
        layer = LiveMapLayer()
        layer.attach(engine)
        st.session_state.engine = engine
        st.session_state.scheduler = sched
        st.session_state.layer = layer
        st.session_state.recorder = DeliveryRecorder(engine)
        st.session_state.last_wall = time.monotonic()
        LOG.info("Dashboard session started")
    return st.session_state  # type: ignore[return-value]


def _catch_up(state) -> None:
    now = time.monotonic()
    elapsed = max(0.0, now - float(state.last_wall))
    state.last_wall = now
    fired = state.scheduler.advance(elapsed)
    if fired:
        LOG.debug("Advanced %.1fs, %d ticks", elapsed, fired)


def _rows(engine: TrackingEngine) -> List[Dict[str, object]]:
    rows: List[Dict[str, object]] = []
    for tid, rec in engine.all_tracking_info().items():
        rows.append({
            "truck": tid,
            "status": rec.status,
            "lat": round(rec.position.lat, 5),
            "lng": round(rec.position.lng, 5),
            "speed_kmh": round(rec.speed_kmh, 1),
            "heading": round(rec.heading_deg),
            "covered_km": round(rec.distance_covered_km, 2),
            "remaining_km": round(rec.distance_remaining_km, 2),
            "eta": eta_text(rec),
            "updated": rec.last_updated.strftime("%H:%M:%S"),
        })
    return rows


def _sidebar(state) -> None:
    engine: TrackingEngine = state.engine
    cfg = engine.config

    st.sidebar.subheader("Start tracking")
    truck_id = st.sidebar.text_input("Truck ID", value="truck-1")
    c1, c2 = st.sidebar.columns(2)
    with c1:
        lat = st.number_input("Origin lat", value=float(cfg.default_origin[0]), format="%.4f")
    with c2:
        lng = st.number_input("Origin lng", value=float(cfg.default_origin[1]), format="%.4f")
    distance = st.sidebar.number_input("Total distance (km)", value=float(cfg.default_total_distance_km), min_value=0.0)
    dest_label = st.sidebar.text_input("Destination label", value="")
    if st.sidebar.button("Start", use_container_width=True) and truck_id.strip():
        engine.start_tracking(
            truck_id.strip(), Coordinate(lat, lng), distance,
            destination_label=dest_label.strip() or None,
        )

    tracked = engine.tracked_trucks()
    if not tracked:
        return
    st.sidebar.divider()
    st.sidebar.subheader("Tracked trucks")
    selected = st.sidebar.selectbox("Truck", tracked)
    order_id = st.sidebar.text_input("Order ID", value="")
    cA, cB = st.sidebar.columns(2)
    with cA:
        if st.button("Stop", use_container_width=True):
            engine.stop_tracking(selected)
            state.layer.forget(selected)
    with cB:
        if st.button("Delivered", use_container_width=True, disabled=not order_id.strip()):
            rec = state.recorder.mark_delivered(order_id.strip(), selected)
            state.layer.forget(selected)
            if rec is not None:
                st.sidebar.success(f"{order_id}: {rec.distance_km:.1f} km")


def main() -> None:
    st.set_page_config(page_title="Fleet Tracking", layout="wide")
    state = _session()
    _catch_up(state)
    _sidebar(state)

    engine: TrackingEngine = state.engine
    st.title("Live truck tracking")
    st.caption("Simulated positions · one tick every %.0fs" % engine.config.tick_interval_sec)
    auto = st.toggle("Auto refresh", value=True)

    records = engine.all_tracking_info()
    st.components.v1.html(render_map_html(records, state.layer.latest), height=520, scrolling=False)

    if not records:
        st.info("No trucks are being tracked.")
        return

    for tid, rec in records.items():
        pct = delivery_progress(rec)
        st.progress(int(pct), text=f"{tid}: {pct:.0f}% · {eta_text(rec)}")

    st.dataframe(pd.DataFrame(_rows(engine)), use_container_width=True, hide_index=True)

    if state.recorder.deliveries:
        st.subheader("Completed deliveries")
        st.dataframe(
            pd.DataFrame([
                {"order": d.order_id, "truck": d.truck_id, "distance_km": round(d.distance_km, 2)}
                for d in state.recorder.deliveries.values()
            ]),
            use_container_width=True,
            hide_index=True,
        )

    if auto:
        time.sleep(1.0)
        st.rerun()


if __name__ == "__main__":
    main()
