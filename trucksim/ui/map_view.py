from __future__ import annotations

from typing import Dict, Mapping, Optional

import folium

from trucksim.tracking.engine import Subscription, TrackingEngine
from trucksim.tracking.record import ARRIVED, PositionSample, TrackingRecord

_ROUTE_COLORS = ["#2563eb", "#0f766e", "#9333ea", "#ea580c", "#be123c", "#4d7c0f"]


class LiveMapLayer:
    """Subscriber keeping the last sample per truck for the map to redraw from."""

    def __init__(self) -> None:
        self.latest: Dict[str, PositionSample] = {}
        self.samples_seen = 0
        self._sub: Optional[Subscription] = None

    def __call__(self, sample: PositionSample) -> None:
        self.latest[sample.truck_id] = sample
        self.samples_seen += 1

    def attach(self, engine: TrackingEngine) -> Subscription:
        self._sub = engine.register_update_callback(self)
        return self._sub

    def detach(self) -> None:
        if self._sub is not None:
            self._sub.unregister()
            self._sub = None

    def forget(self, truck_id: str) -> None:
        self.latest.pop(truck_id, None)


def _color_for(idx: int) -> str:
    return _ROUTE_COLORS[idx % len(_ROUTE_COLORS)]


def build_map(
    records: Mapping[str, TrackingRecord],
    samples: Optional[Mapping[str, PositionSample]] = None,
    zoom_start: int = 10,
) -> folium.Map:
    samples = samples or {}
    pts = [rec.position for rec in records.values()]
    if pts:
        clat = sum(p.lat for p in pts) / len(pts)
        clng = sum(p.lng for p in pts) / len(pts)
    else:
        clat, clng = 0.0, 0.0
    m = folium.Map(location=[clat, clng], zoom_start=zoom_start if pts else 3)

    for idx, (truck_id, rec) in enumerate(records.items()):
        color = _color_for(idx)
        folium.PolyLine(
            [p.as_tuple() for p in rec.route],
            color=color,
            weight=4,
            opacity=0.7,
            tooltip=f"{truck_id} route",
        ).add_to(m)
        folium.CircleMarker(
            location=rec.destination.as_tuple(),
            radius=5,
            color=color,
            fill=True,
            fill_opacity=0.6,
            tooltip=rec.destination_label or f"{truck_id} destination",
        ).add_to(m)

        sample = samples.get(truck_id)
        fuel = f"{sample.fuel_level:.0f}%" if sample is not None else "n/a"
        where = sample.location if sample is not None else ""
        popup = folium.Popup(
            html=(
                f"<b>{truck_id}</b><br/>speed={rec.speed_kmh:.1f} km/h"
                f"<br/>heading={rec.heading_deg:.0f}&deg;<br/>fuel={fuel}<br/>{where}"
            ),
            max_width=260,
        )
        folium.Marker(
            location=rec.position.as_tuple(),
            tooltip=truck_id,
            popup=popup,
            icon=folium.Icon(color="green" if rec.status == ARRIVED else "blue", icon="truck", prefix="fa"),
        ).add_to(m)
    return m


def render_map_html(
    records: Mapping[str, TrackingRecord],
    samples: Optional[Mapping[str, PositionSample]] = None,
) -> str:
    # Return HTML string for embedding
    return build_map(records, samples).get_root().render()
