import folium
import numpy as np

from trucksim.infra.config import EngineConfig
from trucksim.tracking.engine import TrackingEngine
from trucksim.tracking.geometry import Coordinate
from trucksim.tracking.scheduler import VirtualScheduler
from trucksim.ui.map_view import LiveMapLayer, build_map, render_map_html


def _engine():
    sched = VirtualScheduler()
    return TrackingEngine(sched, EngineConfig(), rng=np.random.default_rng(0)), sched


def test_live_layer_keeps_latest_sample_per_truck():
    engine, sched = _engine()
    layer = LiveMapLayer()
    layer.attach(engine)
    engine.start_tracking("truck-1", Coordinate(6.5, 3.4), 50.0)
    engine.start_tracking("truck-2", Coordinate(6.6, 3.5), 50.0)
    sched.advance(20.0)

    assert set(layer.latest) == {"truck-1", "truck-2"}
    assert layer.samples_seen == 6
    assert layer.latest["truck-1"].position == engine.get_tracking_info("truck-1").position

    layer.detach()
    sched.advance(10.0)
    assert layer.samples_seen == 6


def test_build_map_draws_route_and_marker():
    engine, _ = _engine()
    layer = LiveMapLayer()
    layer.attach(engine)
    engine.start_tracking("truck-7", Coordinate(6.5, 3.4), 50.0, destination_label="Ikeja")

    m = build_map(engine.all_tracking_info(), layer.latest)
    assert isinstance(m, folium.Map)
    kinds = [type(child).__name__ for child in m._children.values()]
    assert "PolyLine" in kinds
    assert "Marker" in kinds

    html = render_map_html(engine.all_tracking_info(), layer.latest)
    assert "truck-7" in html
    assert "En route to Ikeja" in html


def test_build_map_empty():
    assert isinstance(build_map({}), folium.Map)
